"""
One-shot cleanup: permanently merge same-name participant rows left behind by
joins made before phone identity existed.

DRY RUN by default. Use --commit to persist.

Usage:
  python scripts/merge_duplicates.py SPRING26 "Jordan Lee"
  python scripts/merge_duplicates.py SPRING26 "Jordan Lee" --commit
"""
from __future__ import annotations

import argparse
import os
import sys
from typing import Optional, Sequence

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import models  # noqa: E402,F401
from database import SessionLocal  # noqa: E402
from models.RetreatParticipant import RetreatParticipant  # noqa: E402
from services.duplicate_collapse import merge_duplicate_participants, normalize_name  # noqa: E402
from services.retreat_service import resolve_retreat  # noqa: E402
from utils.logger import setup_api_logger  # noqa: E402

logger = setup_api_logger()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Merge duplicate participant rows that share a display name")
    parser.add_argument("retreat", help="Retreat ID or invite code")
    parser.add_argument("name", help="Display name shared by the duplicate rows")
    parser.add_argument("--commit", action="store_true", help="Persist the merge (default is a dry run)")
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        retreat = resolve_retreat(db, args.retreat)
        if retreat is None:
            print(f"Retreat not found: {args.retreat}", file=sys.stderr)
            return 1

        matches = [
            p for p in db.query(RetreatParticipant).filter(RetreatParticipant.retreat_id == retreat.id).all()
            if normalize_name(p.name) == normalize_name(args.name)
        ]
        print(f"Found {len(matches)} participant row(s) named '{args.name}' in retreat {retreat.code}.")
        if not args.commit:
            for p in matches:
                print(f"  id={p.id} phone={'yes' if p.phone_e164 else 'no'} leader={p.is_leader} last_seen={p.last_seen_at}")
            print("Dry run only. Re-run with --commit to merge.")
            return 0

        kept = merge_duplicate_participants(db, retreat.id, args.name)
        if kept is None:
            print("Nothing to merge.")
            return 0

        logger.info("Merged duplicate participants retreat=%s name=%r kept=%s", retreat.id, args.name, kept)
        print(f"Merged into participant {kept}.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
