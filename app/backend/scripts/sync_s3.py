"""
Move tree images to the S3 folder of their labeled species.

Runs the same reconciliation as POST /versioning/sync-s3: every prediction
whose predicted species differs from its labeled species has its image (and
compressed image) moved from images2/<predicted>/ to images2/<labeled>/.

Usage:
    python scripts/sync_s3.py --bucket retrain-cls                 # Dry-run (preview only)
    python scripts/sync_s3.py --bucket retrain-cls --no-dry-run    # Move objects in S3

Defaults to dry-run mode. Use --no-dry-run to modify the bucket.
"""

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from database.connection import close_engine, create_db_engine, create_session_factory
from services.s3_storage import IMAGE_PREFIX, S3Storage, get_s3_client
from services.s3_sync import sync_mismatched_images


logging.basicConfig(
    level=logging.INFO,
    format='%(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        '--bucket', '-b',
        required=True,
        help='S3 bucket holding the species folders'
    )
    parser.add_argument(
        '--prefix',
        default=IMAGE_PREFIX,
        help=f'Key prefix of the species folders (default: {IMAGE_PREFIX})'
    )

    # Dry-run is the default; --no-dry-run must be passed to touch the bucket
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        '--dry-run',
        dest='dry_run',
        action='store_true',
        default=True,
        help='List planned moves without modifying S3 (default)'
    )
    mode.add_argument(
        '--no-dry-run',
        dest='dry_run',
        action='store_false',
        help='Copy and delete objects in S3'
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logger.info(f"Syncing bucket {args.bucket} under {args.prefix}/ ({'dry-run' if args.dry_run else 'live'} mode)")

    engine = create_db_engine()
    SessionLocal = create_session_factory(engine)
    storage = S3Storage(get_s3_client())

    try:
        with SessionLocal() as db:
            report = sync_mismatched_images(db, storage, args.bucket, dry_run=args.dry_run, prefix=args.prefix)
    finally:
        close_engine(engine)

    logger.info("=" * 80)
    logger.info(report.message.upper())
    logger.info("=" * 80)
    for action in report.actions:
        logger.info(f"  [{action['action']}] tree {action['tree_id']}: {action['from']} -> {action['to']}")
    logger.info(f"Processed: {report.processed}")
    logger.info(f"Moved:     {report.moved}")
    logger.info(f"Skipped:   {report.skipped}")
    logger.info(f"Errors:    {len(report.errors)}")
    logger.info(f"Duration:  {report.duration_ms}ms")

    if args.dry_run:
        logger.info("\nDRY RUN complete. Run with --no-dry-run to move objects.")

    return 1 if report.errors else 0


if __name__ == "__main__":
    sys.exit(main())
