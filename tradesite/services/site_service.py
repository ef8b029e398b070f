# tradesite/services/site_service.py
import json
import logging
from typing import Any

from fastapi import HTTPException, status
from pydantic import ValidationError as PydanticValidationError

from tradesite.core.errors import InvalidSectionError, StorageError, ValidationError
from tradesite.db.storage import ShardStore
from tradesite.models.site import RepairReport, SiteData

logger = logging.getLogger(__name__)


async def get_site_data(storage: ShardStore) -> SiteData:
    doc, report = await storage.get_document()
    if not report.clean:
        logger.warning("Site data assembled with missing product records: %s", report.missingProducts)
    return doc


async def get_repair_report(storage: ShardStore) -> RepairReport:
    return await storage.repair_report()


async def replace_site_data(storage: ShardStore, doc: SiteData) -> None:
    try:
        await storage.replace_document(doc)
    except StorageError as e:
        logger.error("Error saving site data: %s", e)
        raise HTTPException(status_code=500, detail=str(e))


async def update_site_section(storage: ShardStore, section: str, value: Any) -> Any:
    try:
        return await storage.update_section(section, value)
    except InvalidSectionError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors)
    except StorageError as e:
        logger.error("Error updating site section %s: %s", section, e)
        raise HTTPException(status_code=500, detail=str(e))


async def import_site_data_file(storage: ShardStore, content: bytes, max_bytes: int) -> SiteData:
    """Replace the whole document with an uploaded JSON file."""
    # Chunked uploads carry no Content-Length, so the middleware cannot see their size
    if len(content) > max_bytes:
        raise HTTPException(status_code=413, detail=f"Uploaded file exceeds {max_bytes} bytes")

    try:
        raw = json.loads(content.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is not valid JSON")

    try:
        doc = SiteData.model_validate(raw)
    except PydanticValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=e.errors(include_url=False, include_context=False),
        )

    await replace_site_data(storage, doc)
    return doc
