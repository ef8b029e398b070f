# tradesite/services/inquiry_service.py
import logging
from typing import List

from fastapi import HTTPException

from tradesite.core.errors import NotFoundError, StorageError
from tradesite.db.storage import ShardStore
from tradesite.models.inquiry import Inquiry, InquiryCreate, InquiryStatus

logger = logging.getLogger(__name__)


async def get_inquiries(storage: ShardStore) -> List[Inquiry]:
    return await storage.list_inquiries()


async def create_inquiry(storage: ShardStore, data: InquiryCreate) -> Inquiry:
    try:
        return await storage.create_inquiry(data)
    except StorageError as e:
        logger.error("Error creating inquiry: %s", e)
        raise HTTPException(status_code=500, detail="Failed to create inquiry")


async def update_inquiry_status(storage: ShardStore, inquiry_id: str, status: InquiryStatus) -> Inquiry:
    try:
        return await storage.update_inquiry(inquiry_id, {"status": status})
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Inquiry not found")
