from datetime import date
from typing import Optional

import jwt
import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse
from sqlalchemy import case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.constants import FineStatus, UserRole
from app.core.database import aget_db, aget_license_db
from app.core.rate_limit import limiter
from app.core.security import (
    authenticate_token,
    create_access_token,
    decode_jwt_token,
    hash_password,
    pwd_context,
    require_api_key,
    verify_api_key,
    verify_password,
)
from app.models.division import PoliceDivision
from app.models.driver import Driver, Notification
from app.models.fines import Fine
from app.schemas.auth import (
    DivisionLoginRequest,
    DivisionLoginResponse,
    DivisionSignupRequest,
    DriverLoginRequest,
    DriverLoginResponse,
    DriverSignupRequest,
    Hotspot,
    NotificationOut,
    TokenVerifyRequest,
)
from app.services.registration_service import (
    DriverSignup,
    RegistrationError,
    register_driver,
)
from app.utils.dates import month_bounds, subtract_months, year_bounds

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["auth"])

# Same answer for a bad key, an unknown principal and a wrong password
INVALID_CREDENTIALS = "Invalid credentials."


def invalid_credentials() -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_CREDENTIALS)


async def check_password(password: str, hashed_password: Optional[str]) -> bool:
    if hashed_password is None:
        # Burn the same time as a real comparison
        await run_in_threadpool(pwd_context.dummy_verify)
        return False
    return await run_in_threadpool(verify_password, password, hashed_password)


@router.post("/driver/login", response_model=DriverLoginResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def driver_login(
    request: Request,
    payload: DriverLoginRequest,
    db: AsyncSession = Depends(aget_db),
):
    """Authenticate a driver and return a token plus profile data"""
    key_ok = verify_api_key(payload.api_key)

    driver = await db.scalar(select(Driver).where(Driver.username == payload.username))
    password_ok = await check_password(payload.password, driver.password if driver else None)

    if not (key_ok and driver and password_ok):
        logger.info("driver_login_failed", username=payload.username)
        raise invalid_credentials()

    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == driver.driver_id)
        .order_by(Notification.created_at.desc(), Notification.notification_id.desc())
    )
    notifications = result.scalars().all()

    token = create_access_token(driver.driver_id, UserRole.DRIVER.value)
    logger.info("driver_login_succeeded", driver_id=driver.driver_id)

    return DriverLoginResponse(
        token=token,
        username=driver.username,
        qr_code=driver.qr_code,
        profile_picture=driver.profile_picture,
        notifications=[NotificationOut.model_validate(n) for n in notifications],
    )


@router.post("/division/login", response_model=DivisionLoginResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def division_login(
    request: Request,
    payload: DivisionLoginRequest,
    db: AsyncSession = Depends(aget_db),
):
    """Authenticate a police division and return its fine statistics"""
    key_ok = verify_api_key(payload.api_key)

    division = await db.scalar(select(PoliceDivision).where(PoliceDivision.email == payload.email))
    password_ok = await check_password(payload.password, division.password if division else None)

    if not (key_ok and division and password_ok):
        logger.info("division_login_failed", email=payload.email)
        raise invalid_credentials()

    token = create_access_token(division.division_id, UserRole.DIVISION.value)

    today = date.today()
    two_months_ago = subtract_months(today, 2)
    year_start, next_year_start = year_bounds(today)
    month_start, next_month_start = month_bounds(today)

    stats_query = select(
        func.count(Fine.fine_id),
        func.sum(case((Fine.status == FineStatus.PAID, 1), else_=0)),
        func.sum(case((Fine.status == FineStatus.NOT_PAID, 1), else_=0)),
        func.count(case((Fine.date >= two_months_ago, 1))),
        func.count(case(((Fine.date >= year_start) & (Fine.date < next_year_start), 1))),
    ).where(Fine.division_id == division.division_id)
    stats = (await db.execute(stats_query)).one()

    hotspots_query = select(Fine.lat, Fine.lon).where(
        Fine.division_id == division.division_id,
        Fine.date >= month_start,
        Fine.date < next_month_start,
    )
    hotspots = (await db.execute(hotspots_query)).all()

    logger.info("division_login_succeeded", division_id=division.division_id)

    return DivisionLoginResponse(
        token_id=token,
        division_name=division.division_name,
        issued_fines=stats[0] or 0,
        paid_fines=stats[1] or 0,
        remaining_fines=stats[2] or 0,
        last_two_month_fines=stats[3] or 0,
        this_year_fines=stats[4] or 0,
        this_month_violation_hotspots=[Hotspot(lat=lat, lon=lon) for lat, lon in hotspots],
    )


@router.post("/driver/signup", response_class=PlainTextResponse)
async def driver_signup(
    payload: DriverSignupRequest,
    db: AsyncSession = Depends(aget_db),
    license_db: AsyncSession = Depends(aget_license_db),
):
    """Register a driver whose license is on record in the license registry"""
    require_api_key(payload.api_key)

    signup = DriverSignup(
        license_number=payload.license_number,
        nic_number=payload.nic_number,
        username=payload.username,
        password=payload.password,
        division_name=payload.division_name,
        email=payload.email,
    )
    try:
        await register_driver(db, license_db, signup)
    except RegistrationError as e:
        logger.info(
            "driver_signup_rejected",
            license_number=payload.license_number,
            reason=e.message,
        )
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return "Driver registered successfully."


@router.post("/division/signup", response_class=PlainTextResponse)
async def division_signup(
    payload: DivisionSignupRequest,
    db: AsyncSession = Depends(aget_db),
):
    """Register a police division"""
    require_api_key(payload.api_key)

    division_id = str(payload.division_id)
    existing = await db.scalar(
        select(PoliceDivision.division_id).where(
            or_(
                PoliceDivision.division_id == division_id,
                PoliceDivision.email == payload.email,
                PoliceDivision.division_name == payload.division_name,
            )
        )
    )
    if existing is not None:
        raise HTTPException(status_code=400, detail="Police division already registered.")

    hashed_password = await run_in_threadpool(hash_password, payload.password)
    db.add(PoliceDivision(
        division_id=division_id,
        division_name=payload.division_name,
        email=payload.email,
        location=payload.location,
        password=hashed_password,
    ))
    await db.commit()

    logger.info("division_registered", division_id=division_id)
    return "Police division registered successfully."


@router.post("/verify-token", response_class=PlainTextResponse)
async def verify_token(payload: Optional[TokenVerifyRequest] = None):
    """Report whether a token is still valid (200), missing (401) or invalid/expired (403)"""
    token = payload.token if payload else None
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    try:
        decode_jwt_token(token)
    except jwt.PyJWTError:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    return "OK"


@router.get("/protected", response_class=PlainTextResponse)
async def protected(token_payload: dict = Depends(authenticate_token)):
    return "This is a protected route."
