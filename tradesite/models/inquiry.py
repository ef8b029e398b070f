from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field

from tradesite.models.product import Locale

InquiryStatus = Literal["new", "processing", "closed"]


class InquiryCreate(BaseModel):
    """Visitor-submitted inquiry fields."""

    productId: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone: Optional[str] = None
    company: Optional[str] = None
    message: str = Field(..., min_length=1)
    quantity: Optional[int] = Field(None, ge=1)
    locale: Locale = "en"


class Inquiry(BaseModel):
    id: str
    productId: Optional[str] = None
    name: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    message: str
    quantity: Optional[int] = None
    locale: Locale = "en"
    createdAt: str
    status: InquiryStatus = "new"


class InquiryStatusUpdate(BaseModel):
    status: InquiryStatus
