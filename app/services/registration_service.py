# services/registration_service.py
"""
Driver signup: copies a driver's legal identity and vehicle entitlements
from the license registry into the operational database.
"""
from dataclasses import dataclass
from typing import List, Optional

import structlog
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import hash_password
from app.models.division import PoliceDivision
from app.models.driver import Driver, DriverVehicle
from app.models.license import LicenseInformation, VehicleInformation
from app.services.qr_service import driver_qr_payload, generate_qr_code, remove_qr_code

logger = structlog.get_logger(__name__)


class RegistrationError(Exception):
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class LicenseNotFoundError(RegistrationError):
    status_code = 404

    def __init__(self):
        super().__init__("License number and NIC do not match.")


class IncompleteLicenseRecordError(RegistrationError):
    def __init__(self):
        super().__init__("Missing essential driver information.")


class DriverAlreadyRegisteredError(RegistrationError):
    def __init__(self):
        super().__init__("Driver already registered.")


class UsernameTakenError(RegistrationError):
    def __init__(self):
        super().__init__("Username already taken.")


class DivisionNotFoundError(RegistrationError):
    status_code = 404

    def __init__(self):
        super().__init__("Division not found.")


@dataclass
class DriverSignup:
    license_number: str
    nic_number: str
    username: str
    password: str
    division_name: str
    email: Optional[str] = None


async def find_license_record(
    license_db: AsyncSession, license_number: str, nic_number: str
) -> Optional[LicenseInformation]:
    result = await license_db.execute(
        select(LicenseInformation).where(
            LicenseInformation.license_number == license_number,
            LicenseInformation.nic == nic_number,
        )
    )
    return result.scalars().first()


async def find_vehicle_entitlements(
    license_db: AsyncSession, license_number: str
) -> List[VehicleInformation]:
    result = await license_db.execute(
        select(VehicleInformation).where(VehicleInformation.license_number == license_number)
    )
    return list(result.scalars().all())


async def is_driver_registered(db: AsyncSession, license_number: str, nic_number: str) -> bool:
    existing = await db.scalar(
        select(Driver.driver_id).where(
            or_(
                Driver.license_number == license_number,
                Driver.nic_number == nic_number,
            )
        )
    )
    return existing is not None


def is_complete_entitlement(vehicle: VehicleInformation) -> bool:
    return bool(vehicle.vehicle_category and vehicle.date_of_issue and vehicle.date_of_expiry)


async def register_driver(
    db: AsyncSession, license_db: AsyncSession, signup: DriverSignup
) -> Driver:
    """
    Create a driver account from a registry record.

    The driver row is flushed before the QR code is written, so a concurrent
    signup for the same license is rejected by the unique index without
    touching the image. The driver row and its vehicle rows are committed
    together; if anything fails after the QR code was written, the session
    is rolled back and the image removed.

    Raises:
        RegistrationError: one of its subclasses, carrying the HTTP status.
    """
    # 1. The claimed license/NIC pair must exist in the registry
    record = await find_license_record(license_db, signup.license_number, signup.nic_number)
    if record is None:
        raise LicenseNotFoundError()

    if not record.surname or not record.first_name or not record.date_of_birth:
        raise IncompleteLicenseRecordError()

    # 2. Not registered yet
    if await is_driver_registered(db, signup.license_number, signup.nic_number):
        raise DriverAlreadyRegisteredError()

    taken = await db.scalar(select(Driver.driver_id).where(Driver.username == signup.username))
    if taken is not None:
        raise UsernameTakenError()

    # 3. Resolve the division
    division_id = await db.scalar(
        select(PoliceDivision.division_id).where(
            PoliceDivision.division_name == signup.division_name
        )
    )
    if division_id is None:
        raise DivisionNotFoundError()

    vehicles = await find_vehicle_entitlements(license_db, signup.license_number)

    hashed_password = await run_in_threadpool(hash_password, signup.password)

    driver = Driver(
        license_number=record.license_number,
        nic_number=record.nic,
        division_id=division_id,
        surname=record.surname,
        firstname=record.first_name,
        middle_name=record.middle_name or "",
        last_name=record.last_name or "",
        date_of_birth=record.date_of_birth,
        date_of_issue=record.date_of_issue,
        date_of_expiry=record.date_of_expiry,
        address=record.permenant_residence_address,
        email=record.email or signup.email,
        mobile_number=record.mobile_number,
        username=signup.username,
        password=hashed_password,
        profile_picture=record.profile_picture,
    )
    db.add(driver)
    try:
        await db.flush()
    except IntegrityError:
        # Another signup for this license, NIC or username committed first
        await db.rollback()
        logger.info("driver_signup_conflict", license_number=signup.license_number)
        raise DriverAlreadyRegisteredError()

    qr_code_path = None
    try:
        qr_code_path = await run_in_threadpool(
            generate_qr_code,
            driver_qr_payload(signup.license_number, signup.nic_number, signup.username),
            signup.license_number,
            settings.QR_CODE_DIR,
        )
        driver.qr_code = qr_code_path

        copied = 0
        for vehicle in vehicles:
            if not is_complete_entitlement(vehicle):
                logger.info(
                    "vehicle_entitlement_skipped",
                    license_number=signup.license_number,
                    vehicle_id=vehicle.id,
                )
                continue
            db.add(DriverVehicle(
                driver_id=driver.driver_id,
                vehicle_category=vehicle.vehicle_category,
                vehicle_issue_date=vehicle.date_of_issue,
                vehicle_expiry_date=vehicle.date_of_expiry,
            ))
            copied += 1

        await db.commit()
    except Exception:
        await db.rollback()
        if qr_code_path:
            await run_in_threadpool(remove_qr_code, qr_code_path)
        raise

    logger.info(
        "driver_registered",
        driver_id=driver.driver_id,
        division_id=division_id,
        vehicles_copied=copied,
    )
    return driver
