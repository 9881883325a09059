from typing import Any, Literal

from pydantic import BaseModel, Field


class TokenResponse(BaseModel, extra="allow"):
    access_token: str = Field(..., min_length=1, description="Bearer token for Daraja calls")
    expires_in: Any = None


class RegisterUrlRequest(BaseModel):
    ShortCode: str
    ResponseType: Literal["Completed", "Cancelled"] = "Completed"
    ConfirmationURL: str
    ValidationURL: str
