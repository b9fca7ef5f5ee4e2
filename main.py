"""
FamilySync — Entry Point.

`python main.py` seeds the configured document store and logs today's
household overview: the agenda, scheduling conflicts and upcoming bills.
"""

import asyncio
import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from familysync.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from familysync.adapters.store_factory import create_document_store
from familysync.core import queries
from familysync.core.bill_projector import upcoming_payments
from familysync.core.conflict_checker import describe_conflict, detect_conflicts
from familysync.core.store import Store, bind_document_store
from familysync.core.time_range import InvalidRange, format_countdown, format_due_label, parse_timestamp
from familysync.data.seed import seed_database

logger = logging.getLogger("familysync")


async def run() -> None:
    documents = create_document_store()
    store = Store()
    unbind = bind_document_store(store, documents)

    # Household wall-clock time; stored events are naive local timestamps
    aware_now = datetime.now(ZoneInfo(settings.TIMEZONE))
    now = aware_now.replace(tzinfo=None)
    today = now.date()

    if not store.state.members:
        await seed_database(documents, today=today)

    state = store.state
    agenda = queries.events_for_date(state.events, today)
    logger.info("Today: %d event(s)", len(agenda))
    for event in agenda:
        names = ", ".join(queries.member_name(state.members, m) for m in event.get("assigned_to") or [])
        meal = queries.resolve_meal(event, state.meals)
        start = parse_timestamp(event["start_time"])
        logger.info(
            "  %s  %s (%s)%s  [%s]",
            start.strftime("%H:%M"),
            event["title"],
            names,
            f" - {meal['name']}" if meal else "",
            format_countdown(start, aware_now if start.tzinfo else now),
        )
        try:
            conflicts = detect_conflicts(
                event, state.events, tight_transition_minutes=settings.TIGHT_TRANSITION_MINUTES,
            )
        except InvalidRange as exc:
            logger.warning("    Skipping conflict check: %s", exc)
            continue
        for conflict in conflicts:
            logger.warning("    %s", describe_conflict(conflict, state.members))

    for projection in upcoming_payments(state.bills, state.bill_payments, today):
        bill = queries.find_by_id(state.bills, projection.bill_id) or {}
        logger.info(
            "Bill %s: %.2f %s, %s (%s) %s",
            bill.get("name", projection.bill_id),
            float(bill.get("amount") or 0),
            settings.CURRENCY,
            format_due_label(projection.days_until_due),
            projection.due_date.isoformat(),
            projection.status.value,
        )

    unbind()


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
