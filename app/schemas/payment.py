from typing import Optional

from pydantic import BaseModel


class CheckoutSessionRequest(BaseModel):
    fine_id: int
    api_key: Optional[str] = None


class CheckoutSessionResponse(BaseModel):
    sessionId: str
    url: Optional[str] = None


class WebhookResponse(BaseModel):
    received: bool = True
