#!/usr/bin/env python3
"""
Print ranked warm intro paths from a user to a target person.

Usage:
    python scripts/find_intro_paths.py USER_ID TARGET_ID [--max-hops N] [--k N]
"""
import sys
import logging
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.services.errors import WarmIntroError
from api.services.intro_paths import WarmIntroService
from config.settings import settings

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    import argparse

    parser = argparse.ArgumentParser(description='Find warm intro paths')
    parser.add_argument('user_id', help='Requesting user id')
    parser.add_argument('target_id', help='Person to be introduced to')
    parser.add_argument('--max-hops', type=int, default=settings.default_max_hops,
                        help='Maximum edges per path')
    parser.add_argument('--k', type=int, default=settings.default_max_paths,
                        help='Maximum number of paths')
    args = parser.parse_args(argv)

    try:
        paths = WarmIntroService().find_intro_paths(
            args.user_id, args.target_id, max_hops=args.max_hops, k=args.k
        )
    except WarmIntroError as e:
        logger.error(f"Path search failed: {e}")
        return 1

    if not paths:
        logger.info(f"No paths from {args.user_id} to {args.target_id} within {args.max_hops} hops")
        return 0

    for path in paths:
        print(f"#{path.rank} [{path.score:.3f}] {' -> '.join(path.node_ids)}")
        print(f"    {path.explanation}")
        if path.introducer_id:
            print(f"    Ask {path.introducer_id} via {path.suggested_channel}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
