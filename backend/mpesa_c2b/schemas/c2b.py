from typing import Any

from pydantic import BaseModel, Field


class C2BTransaction(BaseModel, extra="allow"):
    """Fields Daraja sends to both C2B callbacks.

    Any JSON object is accepted: the payload is passed through as received
    and a missing or oddly typed field must never turn into a rejected
    callback.
    """

    TransactionType: Any = None
    TransID: Any = Field(None, description="M-Pesa receipt number")
    TransTime: Any = None
    TransAmount: Any = None
    BusinessShortCode: Any = None
    BillRefNumber: Any = Field(None, description="Account reference")
    InvoiceNumber: Any = None
    OrgAccountBalance: Any = None
    ThirdPartyTransID: Any = None
    MSISDN: Any = None
    FirstName: Any = None
    MiddleName: Any = None
    LastName: Any = None


class ValidationRequest(C2BTransaction):
    pass


class ConfirmationRequest(C2BTransaction):
    pass


class ValidationResponse(BaseModel):
    ResultCode: str
    ResultDesc: str


class ConfirmationResponse(BaseModel):
    ResultCode: int = 0
    ResultDesc: str = "Success"
