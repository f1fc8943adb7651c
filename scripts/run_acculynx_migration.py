"""
Run one AccuLynx migration from CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import os

from app.services.migration_service import run_migration
from db.config import load_env_files
from db.repositories import ActiveMigrationExistsError


def main() -> int:
    parser = argparse.ArgumentParser(description="Import AccuLynx contacts and jobs into the CRM.")
    parser.add_argument("--org-id", dest="org_id", required=True, help="Target organization id.")
    parser.add_argument("--user-id", dest="user_id", required=True, help="User recorded as the run owner.")
    parser.add_argument(
        "--api-key",
        dest="api_key",
        default=None,
        help="AccuLynx API key. Defaults to the ACCULYNX_API_KEY environment variable.",
    )
    parser.add_argument(
        "--base-url",
        dest="base_url",
        default=None,
        help="Optional AccuLynx API base URL override.",
    )
    parser.add_argument(
        "--dry-run",
        dest="dry_run",
        action="store_true",
        help="Validate the credential and record the run without importing.",
    )
    args = parser.parse_args()

    load_env_files()
    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").strip().upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    api_key = args.api_key or os.getenv("ACCULYNX_API_KEY", "").strip()
    if not api_key:
        parser.error("an API key is required (--api-key or ACCULYNX_API_KEY)")

    try:
        result = run_migration(
            org_id=args.org_id,
            user_id=args.user_id,
            credential=api_key,
            base_url_override=args.base_url,
            dry_run=args.dry_run,
        )
    except ActiveMigrationExistsError as exc:
        print(json.dumps({"success": False, "errors": [str(exc)]}, indent=2))
        return 2

    print(json.dumps(result.as_dict(), indent=2))
    return 0 if result.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
