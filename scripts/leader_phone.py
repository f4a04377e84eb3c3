"""
Manage phone-based leader allowlist entries for a retreat.

Adding the first phone switches the retreat into allowlist mode: from then on
leader status follows the allowlist on every request.

Usage:
  python scripts/leader_phone.py SPRING26 "+1 501 231 5761"
  python scripts/leader_phone.py SPRING26 5012315761 --remove
  python scripts/leader_phone.py 3 --list
"""
from __future__ import annotations

import argparse
import os
import sys
from typing import Optional, Sequence

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import models  # noqa: E402,F401
from database import SessionLocal  # noqa: E402
from services.leader_allowlist import add_leader_phone, list_leader_phones, remove_leader_phone  # noqa: E402
from services.phone_number import normalize  # noqa: E402
from services.retreat_service import resolve_retreat  # noqa: E402
from utils.logger import setup_api_logger  # noqa: E402

logger = setup_api_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage phone-based retreat leader allowlist entries")
    parser.add_argument("retreat", help="Retreat ID or invite code")
    parser.add_argument("phone", nargs="?", help="Phone number to add/remove (E.164 or US format)")
    parser.add_argument("--remove", action="store_true", help="Remove this phone from the leader allowlist")
    parser.add_argument("--list", action="store_true", help="List allowlisted leader phones for the retreat")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    db = SessionLocal()
    try:
        retreat = resolve_retreat(db, args.retreat)
        if retreat is None:
            print(f"Retreat not found: {args.retreat}", file=sys.stderr)
            return 1

        if args.list:
            rows = list_leader_phones(db, retreat)
            if not rows:
                print(f"No phone-based leader allowlist entries for retreat {retreat.code}.")
                return 0
            for row in rows:
                added = f"{row['added_at']:%Y-%m-%d %H:%M:%S}" if row["added_at"] else "-"
                print(f"{row['phone_e164']:<16} {row['masked']:<20} {added}")
            return 0

        if not args.phone or not args.phone.strip():
            print("A phone number is required unless using --list.", file=sys.stderr)
            return 1

        phone = normalize(args.phone)
        if phone is None:
            print("Invalid phone number. Provide E.164 (e.g. +15012315761) or a valid US 10-digit number.", file=sys.stderr)
            return 1

        if args.remove:
            deleted, demoted = remove_leader_phone(db, retreat, phone)
            logger.info("Leader allowlist remove %s retreat=%s deleted=%s demoted=%s", phone, retreat.id, deleted, demoted)
            if deleted:
                print(f"Removed {phone} from leader allowlist for retreat {retreat.code}.")
            else:
                print(f"{phone} was not present in leader allowlist for retreat {retreat.code}.")
            if demoted:
                print(f"Demoted {demoted} participant record(s) tied to {phone}.")
            return 0

        promoted = add_leader_phone(db, retreat, phone)
        logger.info("Leader allowlist add %s retreat=%s promoted=%s", phone, retreat.id, promoted)
        print(f"Allowlisted {phone} as a leader identity for retreat {retreat.code}.")
        if promoted:
            print(f"Promoted {promoted} participant record(s) tied to {phone}.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
