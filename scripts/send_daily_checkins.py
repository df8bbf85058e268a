"""Send today's scheduled check-in prompt to every active subject.

Meant to be run once a day by cron or another external scheduler.
"""

from __future__ import annotations

import argparse
import logging

from sqlalchemy.exc import SQLAlchemyError

from app.application.use_cases.checkins import (
    NotificationDispatcher,
    send_daily_checkin,
    send_daily_checkins,
)
from app.config import get_settings
from app.domain.exceptions import CheckinError
from app.infrastructure.database import SessionLocal, initialize_database
from app.infrastructure.messaging import LineMessagingChannel


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for the daily trigger."""

    parser = argparse.ArgumentParser(
        description="Send the scheduled daily check-in prompt.",
    )
    target = parser.add_mutually_exclusive_group()
    target.add_argument(
        "--owner-id",
        type=int,
        default=None,
        help="Only send to the subjects of this caregiver",
    )
    target.add_argument(
        "--subject-id",
        type=int,
        default=None,
        help="Only send to this subject",
    )
    return parser.parse_args()


def main() -> None:
    """Run the daily trigger with the provided command line arguments."""

    args = parse_args()
    logging.basicConfig(level=get_settings().log_level.upper())

    initialize_database()
    dispatcher = NotificationDispatcher(messaging_channel=LineMessagingChannel())

    session = SessionLocal()
    try:
        if args.subject_id is not None:
            result = send_daily_checkin(session, dispatcher, args.subject_id)
            print(
                "Check-in sent:\n"
                f"  Subject: {result.subject.name} ({result.subject.id})\n"
                f"  Record: {result.record.id}\n"
                f"  Delivered: {'yes' if result.delivered else 'no'}"
            )
        else:
            summary = send_daily_checkins(session, dispatcher, owner_id=args.owner_id)
            print(
                "Daily check-ins finished:\n"
                f"  Sent: {summary['sent']}\n"
                f"  Not delivered: {summary['undelivered']}\n"
                f"  Already sent today: {summary['already_sent']}\n"
                f"  Failed: {summary['failed']}"
            )
    except CheckinError as exc:
        session.rollback()
        raise SystemExit(f"Could not send the check-in: {exc}") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        raise SystemExit(f"Database error while sending check-ins: {exc}") from exc
    finally:
        session.close()


if __name__ == "__main__":
    main()
