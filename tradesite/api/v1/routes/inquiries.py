# tradesite/api/v1/routes/inquiries.py
from typing import List

from fastapi import APIRouter, Depends, status

from tradesite.db.database import get_storage
from tradesite.db.storage import ShardStore
from tradesite.models.inquiry import Inquiry, InquiryCreate, InquiryStatusUpdate
from tradesite.services.inquiry_service import create_inquiry, get_inquiries, update_inquiry_status

router = APIRouter()


@router.get("", response_model=List[Inquiry])
async def list_inquiries(storage: ShardStore = Depends(get_storage)):
    return await get_inquiries(storage)


@router.post("", response_model=Inquiry, status_code=status.HTTP_201_CREATED)
async def create_inquiry_endpoint(inquiry: InquiryCreate, storage: ShardStore = Depends(get_storage)):
    return await create_inquiry(storage, inquiry)


@router.patch("/{inquiry_id}", response_model=Inquiry)
async def update_inquiry_endpoint(
    inquiry_id: str, update: InquiryStatusUpdate, storage: ShardStore = Depends(get_storage)
):
    return await update_inquiry_status(storage, inquiry_id, update.status)
