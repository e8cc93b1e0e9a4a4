"""
Create a consultant with a weekly availability template.

Env:
  DATABASE_URL         - same as the service
  CONSULTANT_NAME      - display name (required)
  CONSULTANT_TITLE     - optional
  CONSULTANT_HOURS     - "1-5 09:00-17:00" (days 0 = Sunday … 6 = Saturday),
                         several groups separated by ";",
                         e.g. "1-5 09:00-17:00;6 22:00-02:00"
"""

import os

from call_scheduler.config import get_settings
from call_scheduler.database import build_engine, build_session_factory, init_db
from call_scheduler.services.consultants import create_consultant


# ======================================================
# ENV
# ======================================================

CONSULTANT_NAME = os.getenv("CONSULTANT_NAME")
CONSULTANT_TITLE = os.getenv("CONSULTANT_TITLE")
CONSULTANT_HOURS = os.getenv("CONSULTANT_HOURS", "1-5 09:00-17:00")

if not CONSULTANT_NAME:
    raise RuntimeError("CONSULTANT_NAME is not set")


# ======================================================
# HOURS PARSER
# ======================================================

def parse_hours(value: str) -> dict[int, tuple[str, str]]:
    """
    "1-5 09:00-17:00;6 22:00-02:00" →
    {1: ("09:00", "17:00"), …, 5: (…), 6: ("22:00", "02:00")}
    """
    hours: dict[int, tuple[str, str]] = {}
    for group in filter(None, (g.strip() for g in value.split(";"))):
        days_part, times_part = group.split()
        start, end = times_part.split("-")

        if "-" in days_part:
            first, last = (int(d) for d in days_part.split("-"))
            days = range(first, last + 1)
        else:
            days = [int(days_part)]

        for day in days:
            if not 0 <= day <= 6:
                raise RuntimeError(f"Invalid day of week: {day}")
            hours[day] = (start, end)
    return hours


# ======================================================
# MAIN
# ======================================================

def main():
    settings = get_settings()
    engine = build_engine(settings.resolved_database_url)
    init_db(engine)

    db = build_session_factory(engine)()
    try:
        consultant = create_consultant(
            db,
            display_name=CONSULTANT_NAME,
            title=CONSULTANT_TITLE,
            weekly_hours=parse_hours(CONSULTANT_HOURS),
        )
    finally:
        db.close()

    print(f"[BOOTSTRAP] Consultant created: {consultant.display_name} (public_id={consultant.public_id})")


if __name__ == "__main__":
    main()
