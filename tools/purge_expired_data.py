"""
============================================================================
FILE: purge_expired_data.py
LOCATION: tools/purge_expired_data.py
============================================================================

PURPOSE:
    Apply the personal-data retention policy: delete expired search queries
    and location history, and strip expired locations from stored queries.

ROLE IN PROJECT:
    Run periodically (cron / Cloud Scheduler). The API never purges on its
    own.

KEY COMPONENTS:
    - main: CLI entry point with dry-run/apply modes
    - _count_expired: Reports what a purge would touch

DEPENDENCIES:
    - External: firebase_admin (via api.config)
    - Internal: api.config, api.data_rights

USAGE:
    Dry run (default):
        python tools/purge_expired_data.py

    Apply changes (requires USE_REAL_FIREBASE=true):
        python tools/purge_expired_data.py --apply
============================================================================
"""

import argparse
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict


PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.append(str(PROJECT_ROOT))

try:
    from api.config import get_db
    from api.data_rights import (
        LOCATION_HISTORY_COLLECTION,
        USER_QUERIES_COLLECTION,
        DataProtection,
    )
except ImportError as exc:
    raise SystemExit(
        "Failed to import api.data_rights. "
        "Run this script from the project root."
    ) from exc


def _parse_args(argv=None) -> argparse.Namespace:
    """Parse CLI arguments.

    Returns:
        argparse.Namespace: Parsed arguments.
    """
    parser = argparse.ArgumentParser(
        description="Purge personal data past its retention period."
    )
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Delete expired data (default is dry-run).",
    )
    parser.add_argument(
        "--allow-mock",
        action="store_true",
        help="Allow --apply against the mock database.",
    )
    return parser.parse_args(argv)


def _count_expired(now: str) -> Dict[str, int]:
    """Count documents past their expiration date.

    Args:
        now: ISO 8601 timestamp to compare against.

    Returns:
        Dict[str, int]: Expired document counts per category.
    """
    db = get_db()
    queries = db.collection(USER_QUERIES_COLLECTION)
    history = db.collection(LOCATION_HISTORY_COLLECTION)
    return {
        "queries": sum(1 for _ in queries.where("expirationDate", "<", now).stream()),
        "query_locations": sum(
            1 for _ in queries.where("locationExpirationDate", "<", now).stream()
        ),
        "location_history": sum(
            1 for _ in history.where("expirationDate", "<", now).stream()
        ),
    }


def main(argv=None) -> int:
    """Run the purge.

    Returns:
        int: Process exit code.
    """
    args = _parse_args(argv)
    use_real_firebase = (
        os.getenv("USE_REAL_FIREBASE", "false").lower() == "true"
    )

    if args.apply and not use_real_firebase and not args.allow_mock:
        print("Refusing to purge because USE_REAL_FIREBASE is not true.")
        print("Set USE_REAL_FIREBASE=true (or pass --allow-mock) and try again.")
        return 2

    now = datetime.now(timezone.utc).isoformat()
    expired = _count_expired(now)

    print("Retention purge report")
    print(f"  USE_REAL_FIREBASE: {use_real_firebase}")
    print(f"  Dry run: {not args.apply}")
    print(f"  Expired queries: {expired['queries']}")
    print(f"  Queries with expired location: {expired['query_locations']}")
    print(f"  Expired location history: {expired['location_history']}")

    if not args.apply:
        print("Dry run complete. No changes applied.")
        return 0

    counts = DataProtection.get_instance().purge_expired_data()
    print(
        f"Deleted {counts['queries_deleted']} queries and "
        f"{counts['history_deleted']} location history entries; "
        f"stripped {counts['locations_stripped']} query locations."
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
