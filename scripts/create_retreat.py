"""
Create a retreat that participants can join with a shared code.

Usage:
  python scripts/create_retreat.py "Spring Caravan" --code SPRING26 \
      --destination "Camp Lakeside" --lat 36.6111 --lng -93.3065 \
      --starts 2026-03-01T08:00:00Z --ends 2026-03-04T18:00:00Z

  # numeric launch code that resolves to SPRING26 at join time
  python scripts/create_retreat.py "Spring Caravan" --code SPRING26 --alias 262026
"""
from __future__ import annotations

import argparse
import os
import sys
from datetime import datetime, timezone
from typing import Optional, Sequence

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import models  # noqa: E402,F401
from database import Base, SessionLocal, engine  # noqa: E402
from services.retreat_service import add_code_alias, create_retreat  # noqa: E402
from utils.logger import setup_api_logger  # noqa: E402

logger = setup_api_logger()


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create a new retreat for location tracking")
    parser.add_argument("name", help="The name of the retreat")
    parser.add_argument("--code", help="Custom retreat code (auto-generated if not provided)")
    parser.add_argument("--destination", help="Destination name")
    parser.add_argument("--lat", type=float, help="Destination latitude")
    parser.add_argument("--lng", type=float, help="Destination longitude")
    parser.add_argument("--starts", help="Start date/time, ISO 8601 (default: now)")
    parser.add_argument("--ends", help="End date/time, ISO 8601 (default: 3 days from now)")
    parser.add_argument("--alias", action="append", default=[], help="Alternate join code (repeatable)")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        try:
            retreat = create_retreat(
                db,
                name=args.name,
                code=args.code,
                destination_name=args.destination,
                destination_lat=args.lat,
                destination_lng=args.lng,
                starts_at=_parse_datetime(args.starts),
                ends_at=_parse_datetime(args.ends),
            )
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

        for alias in args.alias:
            add_code_alias(db, alias, retreat.code)

        logger.info("Created retreat %s (%s)", retreat.id, retreat.code)
        print("Retreat created successfully!")
        print(f"  ID:          {retreat.id}")
        print(f"  Name:        {retreat.name}")
        print(f"  Code:        {retreat.code}")
        print(f"  Destination: {retreat.destination_name or 'Not set'}")
        print(f"  Starts:      {retreat.starts_at:%Y-%m-%d %H:%M}")
        print(f"  Ends:        {retreat.ends_at:%Y-%m-%d %H:%M}")
        if args.alias:
            print(f"  Aliases:     {', '.join(a.upper() for a in args.alias)}")
        print(f"\nShare this code with participants: {retreat.code}")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
