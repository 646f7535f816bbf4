import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import aget_db
from app.core.security import authenticate_token, require_api_key
from app.models.driver import Driver
from app.models.fines import Fine
from app.schemas.fines import (
    DriverFinesRequest,
    DriverFinesResponse,
    FineHistoryItem,
    FineOut,
    FinesHistoryResponse,
)
from app.utils.dates import fine_expiry_date, format_date

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/driver", tags=["fines"])


@router.post("/fines", response_model=DriverFinesResponse)
async def get_driver_fines(
    payload: DriverFinesRequest,
    db: AsyncSession = Depends(aget_db),
):
    """All fines recorded against a driver (without coordinates)"""
    require_api_key(payload.api_key)

    result = await db.execute(
        select(Fine).where(Fine.driver_id == payload.driver_id).order_by(Fine.fine_id)
    )
    fines = result.scalars().all()

    if not fines:
        raise HTTPException(status_code=404, detail="No fines found for the provided driver_id.")

    return DriverFinesResponse(fines=[FineOut.model_validate(fine) for fine in fines])


@router.post("/fines-history", response_model=FinesHistoryResponse)
async def get_fines_history(
    payload: DriverFinesRequest,
    db: AsyncSession = Depends(aget_db),
    token_payload: dict = Depends(authenticate_token),
):
    """Driver details with each fine's issue and expiry dates"""
    require_api_key(payload.api_key)

    driver = await db.get(Driver, payload.driver_id)
    if not driver:
        logger.info("fines_history_driver_not_found", driver_id=payload.driver_id)
        raise HTTPException(status_code=404, detail="Driver not found.")

    result = await db.execute(
        select(Fine).where(Fine.driver_id == driver.driver_id).order_by(Fine.date, Fine.fine_id)
    )
    fines = result.scalars().all()

    if not fines:
        raise HTTPException(status_code=404, detail="No fines found for this driver.")

    return FinesHistoryResponse(
        driver_id=driver.driver_id,
        full_name=driver.username,
        license_id=driver.license_number,
        national_id=driver.nic_number,
        fines=[
            FineHistoryItem(
                offence_issue=fine.description,
                amount=fine.amount,
                date_issue=format_date(fine.date),
                date_expire=format_date(fine_expiry_date(fine.date)),
            )
            for fine in fines
        ],
    )
