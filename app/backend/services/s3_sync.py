"""
S3 species-folder sync.

Moves tree images from the predicted species folder to the labeled species
folder when the two differ:

    {prefix}/{predicted common name}/{image}  ->  {prefix}/{labeled common name}/{image}

A move is a copy followed by a delete. Rows are processed one at a time and
per-image storage failures are recorded in the report instead of aborting
the run. Nothing is retried and nothing is rolled back.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from botocore.exceptions import BotoCoreError, ClientError
from sqlalchemy.orm import Session

from services.predictions import MismatchedPrediction, find_mismatched_predictions
from services.s3_storage import IMAGE_PREFIX, S3Storage

logger = logging.getLogger(__name__)

# Action tags reported per row or image
ACTION_MISSING_SPECIES = "missing_species_name"
ACTION_SAME_FOLDER = "no_move_needed_same_folder"
ACTION_WOULD_MOVE = "would_move"
ACTION_SOURCE_NOT_FOUND = "source_not_found"
ACTION_MOVED = "moved"


@dataclass
class ImageMove:
    """Source and destination keys for one image file."""

    image_name: str
    source: str
    destination: str


@dataclass
class SyncReport:
    """Accumulated outcome of one sync run."""

    dry_run: bool
    processed: int = 0
    moved: int = 0
    skipped: int = 0
    errors: List[dict] = field(default_factory=list)
    actions: List[dict] = field(default_factory=list)
    duration_ms: int = 0
    finished_at: Optional[datetime] = None
    _started: float = field(default_factory=time.monotonic, repr=False)

    @property
    def message(self) -> str:
        return "Dry run completed" if self.dry_run else "S3 sync completed"

    def record_action(self, row: MismatchedPrediction, action: str,
                      move: Optional[ImageMove] = None, **extra) -> dict:
        entry = {
            "tree_id": row.tree_id,
            "image_name": move.image_name if move else row.image_name,
            "from": move.source if move else None,
            "to": move.destination if move else None,
            "predicted_species": row.predicted_common_name,
            "labeled_species": row.labeled_common_name,
            "action": action,
        }
        entry.update(extra)
        self.actions.append(entry)
        return entry

    def record_error(self, row: MismatchedPrediction, image_name: str, error: Exception):
        self.errors.append({
            "tree_id": row.tree_id,
            "image_name": image_name,
            "error": str(error),
        })

    def finish(self) -> "SyncReport":
        self.duration_ms = int((time.monotonic() - self._started) * 1000)
        self.finished_at = datetime.now(timezone.utc)
        return self

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "dry_run": self.dry_run,
            "processed": self.processed,
            "moved": self.moved,
            "skipped": self.skipped,
            "errors": self.errors,
            "actions": self.actions,
            "duration": self.duration_ms,
            "timestamp": self.finished_at or datetime.now(timezone.utc),
        }


class S3SyncService:
    """Plans and performs image moves for mismatched predictions."""

    def __init__(self, storage: S3Storage, prefix: str = IMAGE_PREFIX):
        self.storage = storage
        self.prefix = prefix

    def build_key(self, species_name: str, image_name: str) -> str:
        # Common names are used verbatim as folder names
        return f"{self.prefix}/{species_name}/{image_name}"

    def plan_moves(self, row: MismatchedPrediction) -> List[ImageMove]:
        """Source/destination keys for the image and its compressed variant."""
        names = [row.image_name]
        if row.compressed_image_name:
            names.append(row.compressed_image_name)

        return [
            ImageMove(
                image_name=name,
                source=self.build_key(row.predicted_common_name, name),
                destination=self.build_key(row.labeled_common_name, name),
            )
            for name in names
        ]

    def run(self, rows: Iterable[MismatchedPrediction], bucket: str, dry_run: bool = False) -> SyncReport:
        """
        Reconcile S3 folders for the given mismatched rows.

        Args:
            rows: Mismatched predictions, one per image
            bucket: Target bucket name
            dry_run: Report intended moves without touching S3

        Returns:
            Finished SyncReport

        Raises:
            ValueError: If bucket is empty
        """
        if not bucket:
            raise ValueError("Bucket name is required")

        rows = list(rows)
        report = SyncReport(dry_run=dry_run)
        logger.info(f"Starting S3 sync: bucket={bucket} dry_run={dry_run} rows={len(rows)}")

        for row in rows:
            report.processed += 1
            logger.info(
                f"Processing tree {row.tree_id} ({report.processed}/{len(rows)}): "
                f"{row.image_name} '{row.predicted_common_name}' -> '{row.labeled_common_name}'"
            )
            self._sync_row(row, bucket, dry_run, report)

        report.finish()
        logger.info(
            f"{report.message} in {report.duration_ms}ms: processed={report.processed} "
            f"moved={report.moved} skipped={report.skipped} errors={len(report.errors)}"
        )
        for error in report.errors:
            logger.error(f"Tree {error['tree_id']} - {error['image_name']}: {error['error']}")
        return report

    def _sync_row(self, row: MismatchedPrediction, bucket: str, dry_run: bool, report: SyncReport):
        if not row.predicted_common_name or not row.labeled_common_name:
            logger.warning(f"Skipping tree {row.tree_id} - missing species names")
            report.record_action(row, ACTION_MISSING_SPECIES)
            report.skipped += 1
            return

        moves = self.plan_moves(row)
        if moves[0].source == moves[0].destination:
            logger.info(f"Folders are identical - no move needed for tree {row.tree_id}")
            report.record_action(row, ACTION_SAME_FOLDER, moves[0])
            report.skipped += 1
            return

        for move in moves:
            if dry_run:
                logger.info(f"DRY RUN: would move {move.source} -> {move.destination}")
                report.record_action(row, ACTION_WOULD_MOVE, move)
                continue

            try:
                self._move_image(row, move, bucket, report)
            except (BotoCoreError, ClientError) as e:
                logger.error(f"Error processing {move.image_name}: {e}")
                report.record_error(row, move.image_name, e)

    def _move_image(self, row: MismatchedPrediction, move: ImageMove, bucket: str, report: SyncReport):
        metadata = self.storage.get_object_metadata(bucket, move.source)
        if metadata is None:
            logger.info(f"Source not found: s3://{bucket}/{move.source}")
            report.record_action(row, ACTION_SOURCE_NOT_FOUND, move)
            report.skipped += 1
            return

        logger.debug(f"Source exists: {move.source} ({metadata['size']} bytes)")

        etag = self.storage.copy_object(bucket, move.source, move.destination)
        logger.debug(f"Copied to s3://{bucket}/{move.destination} (ETag {etag})")

        source_deleted = True
        try:
            self.storage.delete_object(bucket, move.source)
        except (BotoCoreError, ClientError) as e:
            source_deleted = False
            logger.warning(f"Copied {move.image_name} but failed to delete source {move.source}: {e}")

        report.record_action(row, ACTION_MOVED, move, source_deleted=source_deleted)
        report.moved += 1
        logger.info(f"Moved {move.image_name} to {move.destination}")


def sync_mismatched_images(db: Session, storage: S3Storage, bucket: str, dry_run: bool = False,
                           prefix: str = IMAGE_PREFIX) -> SyncReport:
    """Find mismatched predictions and reconcile their S3 folders."""
    rows = find_mismatched_predictions(db)
    return S3SyncService(storage, prefix=prefix).run(rows, bucket, dry_run=dry_run)
