"""
Create a club together with its administrator account.
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from clubhub.auth import register_club_admin
from clubhub.dependencies import get_db_client
from clubhub.errors import ClubHubError

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a club and its administrator")
    parser.add_argument("--club", required=True, help="Club name")
    parser.add_argument("--email", required=True, help="Administrator email")
    parser.add_argument("--name", default="", help="Administrator display name")
    parser.add_argument(
        "--password",
        default=None,
        help="Administrator password (prompted when omitted)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    password = args.password or getpass.getpass("Password: ")
    try:
        club, admin = register_club_admin(
            get_db_client(),
            club_name=args.club,
            email=args.email,
            password=password,
            name=args.name,
        )
    except ClubHubError as exc:
        logger.error("Could not create club: %s", exc)
        return 1

    logger.info("Created club %s (%s) with administrator %s", club.name, club.id, admin.email)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
