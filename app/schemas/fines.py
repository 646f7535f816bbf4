import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from app.core.constants import FineStatus


class DriverFinesRequest(BaseModel):
    driver_id: int
    api_key: Optional[str] = None


class FineOut(BaseModel):
    fine_id: int
    driver_id: int
    division_id: str
    amount: float
    description: Optional[str] = None
    category: Optional[str] = None
    status: FineStatus
    date: datetime.date

    model_config = ConfigDict(from_attributes=True)


class DriverFinesResponse(BaseModel):
    fines: List[FineOut]


class FineHistoryItem(BaseModel):
    offence_issue: Optional[str] = None
    amount: float
    date_issue: str   # YYYY-MM-DD
    date_expire: str  # YYYY-MM-DD


class FinesHistoryResponse(BaseModel):
    driver_id: int
    full_name: str
    license_id: str
    national_id: str
    fines: List[FineHistoryItem]
