from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class DriverLoginRequest(BaseModel):
    username: str
    password: str
    api_key: Optional[str] = None


class DivisionLoginRequest(BaseModel):
    email: str
    password: str
    api_key: Optional[str] = None


class DriverSignupRequest(BaseModel):
    license_number: str
    nic_number: str
    username: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    password: str = Field(..., min_length=1)
    division_name: str
    api_key: Optional[str] = None


class DivisionSignupRequest(BaseModel):
    # Clients send either numeric or code-style identifiers
    division_id: Union[str, int]
    division_name: str
    email: EmailStr
    location: Optional[str] = None
    password: str = Field(..., min_length=1)
    api_key: Optional[str] = None


class TokenVerifyRequest(BaseModel):
    token: Optional[str] = None


class NotificationOut(BaseModel):
    notification_id: int
    user_id: int
    title: Optional[str] = None
    message: str
    is_read: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DriverLoginResponse(BaseModel):
    token: str
    username: str
    qr_code: Optional[str] = None
    profile_picture: Optional[str] = None
    notifications: List[NotificationOut] = []


class Hotspot(BaseModel):
    lat: Optional[float] = None
    lon: Optional[float] = None


class DivisionLoginResponse(BaseModel):
    token_id: str
    division_name: str
    issued_fines: int
    paid_fines: int
    remaining_fines: int
    last_two_month_fines: int
    this_year_fines: int
    this_month_violation_hotspots: List[Hotspot] = []
