"""
Integration tests for login, token verification and division signup.
"""
from datetime import date, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.api.v1.routers import auth as auth_router
from app.core.constants import FineStatus
from app.core.security import create_jwt_token, decode_jwt_token, verify_password
from app.models import Fine, Notification, PoliceDivision
from tests.conftest import API_KEY, DIVISION_PASSWORD, DRIVER_PASSWORD


class TestDriverLogin:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_login_success(self, client: AsyncClient, driver, seed) -> None:
        await seed(
            Notification(user_id=driver.driver_id, title="Fine issued", message="Older"),
            Notification(user_id=driver.driver_id, title="Reminder", message="Newer"),
        )

        response = await client.post("/driver/login", json={
            "username": "kamal",
            "password": DRIVER_PASSWORD,
            "api_key": API_KEY,
        })

        assert response.status_code == 200
        data = response.json()
        assert data["username"] == "kamal"
        assert data["qr_code"] == "qr_codes/B1234567.png"
        assert data["profile_picture"] == "profiles/B1234567.jpg"
        assert decode_jwt_token(data["token"])["id"] == driver.driver_id
        assert [n["message"] for n in data["notifications"]] == ["Newer", "Older"]

    @pytest.mark.integration
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"username": "kamal", "password": "wrong", "api_key": API_KEY},
            {"username": "kamal", "password": DRIVER_PASSWORD, "api_key": "wrong-key"},
            {"username": "nobody", "password": DRIVER_PASSWORD, "api_key": API_KEY},
            {"username": "kamal", "password": DRIVER_PASSWORD},
        ],
    )
    async def test_login_failures_are_indistinguishable(
        self, client: AsyncClient, driver, body: dict
    ) -> None:
        response = await client.post("/driver/login", json=body)

        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid credentials."}


class TestDivisionLogin:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_login_returns_statistics(
        self, client: AsyncClient, division, driver, make_fine, seed, monkeypatch
    ) -> None:
        class FixedDate(date):
            @classmethod
            def today(cls):
                return cls(2024, 5, 15)

        monkeypatch.setattr(auth_router, "date", FixedDate)

        await make_fine(date=date(2024, 5, 2), status=FineStatus.PAID, lat=6.90, lon=79.85)
        await make_fine(date=date(2024, 5, 10), lat=6.91, lon=79.86)
        await make_fine(date=date(2024, 3, 20))
        await make_fine(date=date(2024, 2, 1), status=FineStatus.PAID)
        await make_fine(date=date(2023, 12, 30))

        await seed(PoliceDivision(
            division_id="D002",
            division_name="Kandy",
            email="kandy@police.lk",
            password="x",
        ))
        await make_fine(division_id="D002", date=date(2024, 5, 3))

        response = await client.post("/division/login", json={
            "email": "central@police.lk",
            "password": DIVISION_PASSWORD,
            "api_key": API_KEY,
        })

        assert response.status_code == 200
        data = response.json()
        assert decode_jwt_token(data["token_id"])["id"] == "D001"
        assert data["division_name"] == "Colombo Central"
        assert data["issued_fines"] == 5
        assert data["paid_fines"] == 2
        assert data["remaining_fines"] == 3
        assert data["last_two_month_fines"] == 3
        assert data["this_year_fines"] == 4
        assert sorted((h["lat"], h["lon"]) for h in data["this_month_violation_hotspots"]) == [
            (6.90, 79.85),
            (6.91, 79.86),
        ]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_login_without_fines_reports_zeros(self, client: AsyncClient, division) -> None:
        response = await client.post("/division/login", json={
            "email": "central@police.lk",
            "password": DIVISION_PASSWORD,
            "api_key": API_KEY,
        })

        assert response.status_code == 200
        data = response.json()
        assert data["issued_fines"] == 0
        assert data["paid_fines"] == 0
        assert data["remaining_fines"] == 0
        assert data["this_month_violation_hotspots"] == []

    @pytest.mark.integration
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"email": "central@police.lk", "password": "wrong", "api_key": API_KEY},
            {"email": "central@police.lk", "password": DIVISION_PASSWORD, "api_key": "bad"},
            {"email": "unknown@police.lk", "password": DIVISION_PASSWORD, "api_key": API_KEY},
        ],
    )
    async def test_login_failures_are_indistinguishable(
        self, client: AsyncClient, division, body: dict
    ) -> None:
        response = await client.post("/division/login", json=body)

        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid credentials."}


class TestDivisionSignup:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_signup_success(self, client: AsyncClient, db_factory) -> None:
        response = await client.post("/division/signup", json={
            "division_id": 12,
            "division_name": "Galle",
            "email": "galle@police.lk",
            "location": "Galle Fort",
            "password": "galle-pass",
            "api_key": API_KEY,
        })

        assert response.status_code == 200
        assert response.text == "Police division registered successfully."

        async with db_factory() as session:
            division = await session.get(PoliceDivision, "12")
        assert division.division_name == "Galle"
        assert division.password != "galle-pass"
        assert verify_password("galle-pass", division.password)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_signup_duplicate(self, client: AsyncClient, division) -> None:
        response = await client.post("/division/signup", json={
            "division_id": "D001",
            "division_name": "Colombo Central 2",
            "email": "other@police.lk",
            "password": "pass",
            "api_key": API_KEY,
        })

        assert response.status_code == 400
        assert response.json()["detail"] == "Police division already registered."

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_signup_bad_api_key(self, client: AsyncClient, db_factory) -> None:
        response = await client.post("/division/signup", json={
            "division_id": "D009",
            "division_name": "Jaffna",
            "email": "jaffna@police.lk",
            "password": "pass",
            "api_key": "wrong",
        })

        assert response.status_code == 400
        async with db_factory() as session:
            assert (await session.execute(select(PoliceDivision))).first() is None


class TestTokenVerification:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_valid_token(self, client: AsyncClient, driver_token: str) -> None:
        response = await client.post("/verify-token", json={"token": driver_token})
        assert response.status_code == 200

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_missing_token(self, client: AsyncClient) -> None:
        response = await client.post("/verify-token", json={})
        assert response.status_code == 401

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_garbage_token(self, client: AsyncClient) -> None:
        response = await client.post("/verify-token", json={"token": "not-a-jwt"})
        assert response.status_code == 403

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_token_past_its_window(self, client: AsyncClient) -> None:
        token = create_jwt_token({"id": 1}, expires_delta=timedelta(minutes=-1))
        response = await client.post("/verify-token", json={"token": token})
        assert response.status_code == 403

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_token_inside_its_window(self, client: AsyncClient) -> None:
        token = create_jwt_token({"id": 1}, expires_delta=timedelta(minutes=14, seconds=59))
        response = await client.post("/verify-token", json={"token": token})
        assert response.status_code == 200


class TestProtectedRoute:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_requires_token(self, client: AsyncClient) -> None:
        response = await client.get("/protected")
        assert response.status_code == 401

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_rejects_invalid_token(self, client: AsyncClient) -> None:
        response = await client.get("/protected", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 403

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_accepts_valid_token(self, client: AsyncClient, auth_headers: dict) -> None:
        response = await client.get("/protected", headers=auth_headers)
        assert response.status_code == 200
        assert response.text == "This is a protected route."


class TestHealth:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert "X-Request-ID" in response.headers
