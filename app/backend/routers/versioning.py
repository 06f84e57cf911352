"""
Versioning Router - keeps the S3 dataset layout in line with labels

Endpoints:
  POST   /versioning/sync-s3?bucket=&dryRun=   - Move images to their labeled species folder
"""

import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from database.connection import get_db
from dependencies import get_storage
from models import SyncResultRead
from services.s3_storage import S3Storage
from services.s3_sync import sync_mismatched_images

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/sync-s3", response_model=SyncResultRead)
def sync_s3(
    bucket: Optional[str] = Query(None, description="S3 bucket name"),
    dry_run: bool = Query(False, alias="dryRun", description="Only report what would be moved"),
    db: Session = Depends(get_db),
    storage: S3Storage = Depends(get_storage),
):
    """
    Move images from predicted species folders to labeled species folders.

    For every prediction whose predicted and labeled species differ, the
    image (and its compressed variant) is copied to the labeled species
    folder and deleted from the predicted one. Per-image failures are
    reported in `errors`; they do not fail the request.

    Returns:
        Counts of processed rows, moved and skipped images, the error list,
        the action log and the run duration in milliseconds
    """
    if not bucket:
        logger.warning("S3 sync requested without a bucket name")
        raise HTTPException(status_code=400, detail="Bucket name is required")

    started = time.monotonic()
    try:
        report = sync_mismatched_images(db, storage, bucket, dry_run=dry_run)
        return report.to_dict()

    except Exception as e:
        duration_ms = int((time.monotonic() - started) * 1000)
        logger.exception(f"S3 sync failed after {duration_ms}ms")
        raise HTTPException(status_code=500, detail=f"S3 sync error: {str(e)}")
