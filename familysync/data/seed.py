"""Sample household used for demos and first runs."""

from __future__ import annotations

import logging
from datetime import date, datetime, time

from familysync.data.models import (
    ChecklistItem,
    Collection,
    Event,
    Meal,
    Member,
    MemberRole,
    Note,
    NoteType,
    Permissions,
    to_document,
)
from familysync.ports.document_store import DocumentStorePort

logger = logging.getLogger(__name__)

SAMPLE_MEMBERS = [
    Member(
        id="member-dad",
        name="Dad",
        role=MemberRole.PARENT,
        color="dad",
        birthday="1985-03-15",
        phone="(555) 123-4567",
        email="dad@family.com",
    ),
    Member(
        id="member-mom",
        name="Mom",
        role=MemberRole.PARENT,
        color="mom",
        birthday="1987-07-22",
        phone="(555) 234-5678",
        email="mom@family.com",
    ),
    Member(
        id="member-son",
        name="Son",
        role=MemberRole.CHILD,
        color="kid1",
        birthday="2015-09-10",
        permissions=Permissions(can_create_events=True, requires_approval=True),
    ),
]

SAMPLE_MEALS = [
    Meal(
        name="Spaghetti Bolognese",
        description="Classic Italian pasta with rich meat sauce",
        category="dinner",
        cuisine="Italian",
        ingredients=["ground beef", "spaghetti", "tomato sauce"],
        is_favorite=True,
    ),
    Meal(
        name="Chicken Tacos",
        description="Quick and easy weeknight tacos",
        category="dinner",
        cuisine="Mexican",
        is_favorite=True,
    ),
]


def _at(day: date, hour: int, minute: int) -> str:
    return datetime.combine(day, time(hour, minute)).isoformat(timespec="minutes")


async def seed_database(documents: DocumentStorePort, today: date | None = None) -> dict[str, list[str]]:
    """Write the sample members, meals, events and notes.

    Events are placed on `today` (defaults to the current date). Returns the
    created ids per collection value.
    """
    day = today or date.today()
    created: dict[str, list[str]] = {c.value: [] for c in Collection}

    for member in SAMPLE_MEMBERS:
        created[Collection.MEMBERS.value].append(
            await documents.add(Collection.MEMBERS, to_document(member))
        )

    meal_ids = []
    for meal in SAMPLE_MEALS:
        doc = {k: v for k, v in to_document(meal).items() if k != "id"}
        meal_ids.append(await documents.add(Collection.MEALS, doc))
    created[Collection.MEALS.value] = meal_ids

    events = [
        Event(
            title="Soccer Practice",
            start_time=_at(day, 16, 0),
            end_time=_at(day, 17, 30),
            assigned_to=["member-son"],
            color="kid1",
            location={"name": "Riverside Park"},
            category="sports",
        ),
        Event(
            title="Family Dinner",
            start_time=_at(day, 18, 30),
            end_time=_at(day, 19, 30),
            assigned_to=["member-dad", "member-mom", "member-son"],
            color="family",
            location={"name": "Home"},
            category="meal",
            meal=meal_ids[0],
        ),
    ]
    notes = [
        Note(
            title="Weekly Shopping List",
            type=NoteType.SHOPPING,
            color="green",
            pinned=True,
            items=[
                ChecklistItem(id="1", text="Milk"),
                ChecklistItem(id="2", text="Bread"),
            ],
        ),
    ]

    for collection, models in ((Collection.EVENTS, events), (Collection.NOTES, notes)):
        for model in models:
            doc = {k: v for k, v in to_document(model).items() if k != "id"}
            created[collection.value].append(await documents.add(collection, doc))

    logger.info(
        "Database seeded: %s",
        ", ".join(f"{len(ids)} {name}" for name, ids in created.items() if ids),
    )
    return created
