# tradesite/api/v1/routes/site_data.py
from typing import Any

from fastapi import APIRouter, Body, Depends, File, Request, UploadFile

from tradesite.db.database import get_storage
from tradesite.db.storage import ShardStore
from tradesite.models.site import RepairReport, SiteData
from tradesite.services.site_service import (
    get_repair_report,
    get_site_data,
    import_site_data_file,
    replace_site_data,
    update_site_section,
)

router = APIRouter()


@router.get("", response_model=SiteData)
async def read_site_data(storage: ShardStore = Depends(get_storage)):
    return await get_site_data(storage)


@router.get("/repair-report", response_model=RepairReport)
async def read_repair_report(storage: ShardStore = Depends(get_storage)):
    return await get_repair_report(storage)


@router.put("")
async def put_site_data(doc: SiteData, storage: ShardStore = Depends(get_storage)):
    await replace_site_data(storage, doc)
    return {"success": True, "message": "Site data updated successfully"}


@router.post("/upload")
async def upload_site_data(
    request: Request,
    file: UploadFile = File(...),
    storage: ShardStore = Depends(get_storage),
):
    content = await file.read()
    doc = await import_site_data_file(storage, content, request.app.state.settings.max_request_bytes)
    return {
        "success": True,
        "message": "Site data imported successfully",
        "products": len(doc.products),
    }


@router.patch("/{section}")
async def patch_site_section(
    section: str,
    value: Any = Body(...),
    storage: ShardStore = Depends(get_storage),
):
    stored = await update_site_section(storage, section, value)
    return {"success": True, "section": section, "data": stored}
