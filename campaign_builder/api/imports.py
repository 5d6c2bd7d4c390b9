"""
Campaign import endpoints

Upload Google Ads Editor exports (CSV or ZIP) and UI reports, and browse
import history and campaign snapshots.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session

from campaign_builder.config import get_settings
from campaign_builder.models.base import get_db
from campaign_builder.services.campaign_import_service import CampaignImportService
from campaign_builder.services.reconciliation import ImportOptions
from campaign_builder.services.snapshot_service import SnapshotService
from campaign_builder.utils.logger import log

settings = get_settings()

router = APIRouter(prefix="/import", tags=["import"])

EDITOR_EXTENSIONS = (".csv", ".zip")


async def _read_upload(file: UploadFile, allowed: tuple) -> bytes:
    if not file.filename or not file.filename.lower().endswith(allowed):
        raise HTTPException(400, f"Invalid file type. Allowed: {', '.join(allowed)}")
    contents = await file.read()
    if len(contents) > settings.max_upload_bytes:
        raise HTTPException(413, f"File exceeds {settings.max_upload_bytes // (1024 * 1024)}MB limit")
    log.info(f"Import upload: {file.filename} ({len(contents)} bytes)")
    return contents


@router.post("/editor")
async def import_editor_export(
    file: UploadFile = File(..., description="Google Ads Editor CSV export or ZIP of CSVs"),
    update_existing: bool = Form(settings.import_default_update_existing),
    create_snapshot: bool = Form(settings.import_default_create_snapshot),
    db: Session = Depends(get_db),
):
    """
    Import campaigns, ad groups, ads and keywords.

    Existing campaigns and ad groups are skipped unless `update_existing`
    is set. A pre-import snapshot is taken per processed campaign unless
    `create_snapshot` is false.
    """
    contents = await _read_upload(file, EDITOR_EXTENSIONS)
    options = ImportOptions(update_existing=update_existing, create_snapshot=create_snapshot)

    result = CampaignImportService(db).import_file(contents, file.filename, options)
    return result.model_dump()


@router.post("/performance")
async def import_performance_report(
    file: UploadFile = File(..., description="Campaign or ad group performance report CSV"),
    date_range_start: date = Form(...),
    date_range_end: date = Form(...),
    db: Session = Depends(get_db),
):
    """Import performance metrics for existing campaigns / ad groups."""
    if date_range_start > date_range_end:
        raise HTTPException(400, "date_range_start must not be after date_range_end")
    contents = await _read_upload(file, (".csv",))

    result = CampaignImportService(db).import_performance_data(
        contents, file.filename, date_range_start, date_range_end,
    )
    return result.model_dump()


@router.post("/search-terms")
async def import_search_terms_report(
    file: UploadFile = File(..., description="Search terms report CSV"),
    date_range_start: date = Form(...),
    date_range_end: date = Form(...),
    db: Session = Depends(get_db),
):
    """Import a search terms report for existing ad groups."""
    if date_range_start > date_range_end:
        raise HTTPException(400, "date_range_start must not be after date_range_end")
    contents = await _read_upload(file, (".csv",))

    result = CampaignImportService(db).import_search_terms(
        contents, file.filename, date_range_start, date_range_end,
    )
    return result.model_dump()


@router.get("/history")
async def get_import_history(
    limit: int = Query(50, ge=1, le=500, description="Number of imports to return"),
    db: Session = Depends(get_db),
):
    """Most recent imports first."""
    return {
        "success": True,
        "imports": CampaignImportService(db).list_imports(limit=limit),
    }


@router.get("/snapshots/{campaign_id}")
async def get_campaign_snapshots(
    campaign_id: str,
    limit: Optional[int] = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Snapshots of one campaign, newest first."""
    return {
        "success": True,
        "snapshots": SnapshotService(db).list_snapshots(campaign_id, limit=limit),
    }


@router.get("/{import_id}")
async def get_import(import_id: str, db: Session = Depends(get_db)):
    """Details of one import, including its error list."""
    record = CampaignImportService(db).get_import(import_id)
    if record is None:
        raise HTTPException(404, "Import not found")
    return {"success": True, "import": record}
