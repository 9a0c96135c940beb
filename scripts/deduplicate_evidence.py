#!/usr/bin/env python3
"""
Remove duplicate evidence events.

Duplicates share user, subject, object, type, source and timestamp. The
earliest-created event of each group is kept. Safe to rerun after an
interrupted or partially failed sweep.

Usage:
    python scripts/deduplicate_evidence.py [--execute] [--mode delete|mark]
"""
import sys
import logging
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.services.deduplicator import MODE_DELETE, MODE_MARK
from api.services.errors import WarmIntroError
from api.services.intro_paths import WarmIntroService

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    import argparse

    parser = argparse.ArgumentParser(description='Remove duplicate evidence events')
    parser.add_argument('--execute', action='store_true', help='Actually apply changes')
    parser.add_argument('--mode', choices=[MODE_DELETE, MODE_MARK], default=MODE_DELETE,
                        help='Delete duplicates or mark them with status "duplicate"')
    args = parser.parse_args(argv)

    service = WarmIntroService()

    try:
        preview = service.preview_duplicates()
        logger.info(f"Found {preview.total_duplicates} duplicates in {preview.total_groups} groups")
        for group in preview.sample_groups:
            logger.info(
                f"  {group.user_id} {group.type}/{group.source}: {group.count} copies, "
                f"keeping {group.canonical_id}"
            )

        if not args.execute:
            logger.info("DRY RUN - use --execute to apply changes")
            return 0

        if preview.total_duplicates == 0:
            return 0

        result = service.deduplicate(mode=args.mode)
    except WarmIntroError as e:
        logger.error(f"Deduplication failed: {e}")
        return 1

    logger.info(f"\n=== Deduplication Summary ({result.mode}) ===")
    logger.info(f"Removed: {result.deleted_count}")
    logger.info(f"Groups cleaned: {result.groups_cleaned}")
    logger.info(f"Failed: {result.failed_count} in {result.failed_batches} batches")
    for error in result.errors:
        logger.warning(f"  {error}")

    return 1 if result.failed_count else 0


if __name__ == '__main__':
    sys.exit(main())
