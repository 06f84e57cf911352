"""
Debug Router - diagnostics used by the dashboard's S3 tools

Endpoints:
  GET    /debug/predictions                       - Prediction match statistics
  GET    /debug/s3-structure?bucket=&prefix=      - One folder level of the bucket
  GET    /debug/test-s3-access?bucket=            - Check the bucket can be listed
"""

import logging
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from database.connection import get_db
from dependencies import get_storage
from models import DebugPredictionsResponse
from services.predictions import find_prediction_rows
from services.s3_storage import IMAGE_PREFIX, S3Storage

logger = logging.getLogger(__name__)

router = APIRouter()


def _match_status(predicted_id: Optional[int], labeled_id: Optional[int]) -> str:
    if predicted_id is None or labeled_id is None:
        return "unknown"
    return "match" if predicted_id == labeled_id else "mismatch"


@router.get("/predictions", response_model=DebugPredictionsResponse)
def debug_predictions(db: Session = Depends(get_db)):
    """Every prediction row with its match status and S3 folder names."""
    try:
        rows = find_prediction_rows(db)
    except Exception as e:
        logger.error(f"Database error while fetching debug predictions: {e}")
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")

    stats = {"total": 0, "matches": 0, "mismatches": 0, "unknown": 0}
    predictions = []
    for row in rows:
        status = _match_status(row.predicted_specie_id, row.labeled_specie_id)
        stats["total"] += 1
        stats[{"match": "matches", "mismatch": "mismatches", "unknown": "unknown"}[status]] += 1

        predictions.append({
            **row._mapping,
            "match_status": status,
            "predicted_folder": row.predicted_common_name,
            "labeled_folder": row.labeled_common_name,
            "folder_same": row.predicted_common_name == row.labeled_common_name,
        })

    return {"stats": stats, "predictions": predictions}


@router.get("/s3-structure")
def debug_s3_structure(
    bucket: Optional[str] = Query(None),
    prefix: str = Query(IMAGE_PREFIX),
    storage: S3Storage = Depends(get_storage),
):
    """List the species folders and files directly under a prefix."""
    if not bucket:
        raise HTTPException(status_code=400, detail="Bucket name is required")

    try:
        listing = storage.list_folder(bucket, prefix)
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Failed to list s3://{bucket}/{prefix}: {e}")
        raise HTTPException(status_code=500, detail=f"S3 error: {str(e)}")

    return {
        "bucket": bucket,
        "prefix": prefix,
        "folders": listing["folders"],
        "files": listing["files"],
        "totalFiles": len(listing["files"]),
        "totalFolders": len(listing["folders"]),
        "isTruncated": listing["isTruncated"],
    }


@router.get("/test-s3-access")
def debug_test_s3_access(
    bucket: Optional[str] = Query(None),
    storage: S3Storage = Depends(get_storage),
):
    """
    Check that the bucket is reachable with the configured credentials.

    Storage failures are reported in the body (success=false) rather than
    as an HTTP error, so the dashboard can show the error code.
    """
    if not bucket:
        raise HTTPException(status_code=400, detail="Bucket name is required")

    try:
        sample = storage.sample_objects(bucket)
    except ClientError as e:
        error = e.response.get("Error", {})
        logger.warning(f"S3 access test failed for {bucket}: {e}")
        return {
            "success": False,
            "error": error.get("Message", str(e)),
            "errorCode": error.get("Code"),
            "test": "list_objects",
        }
    except BotoCoreError as e:
        logger.warning(f"S3 access test failed for {bucket}: {e}")
        return {
            "success": False,
            "error": str(e),
            "errorCode": type(e).__name__,
            "test": "list_objects",
        }

    return {
        "success": True,
        "bucketAccessible": True,
        "totalObjects": sample["totalObjects"],
        "sampleObjects": sample["sampleObjects"],
        "message": f"Successfully accessed bucket {bucket}",
    }
