"""Availability repository over the document store, one document per coach."""

from datetime import date, datetime
from typing import Optional

from ...core.scheduling.availability import parse_working_hours
from ...core.scheduling.models import DEFAULT_TIME_ZONE, CoachAvailability
from ..documents.store import DocumentStore

COLLECTION = "availability"


def availability_to_document(availability: CoachAvailability) -> dict:
    return {
        "coachId": availability.coach_id,
        "unavailableDates": sorted(d.isoformat() for d in availability.unavailable_dates),
        "workingHours": {
            weekday: {"isWorking": day.is_working, "start": day.start, "end": day.end}
            for weekday, day in availability.working_hours.items()
        },
        "timeZone": availability.time_zone,
        "createdAt": availability.created_at.isoformat() if availability.created_at else None,
        "updatedAt": availability.updated_at.isoformat() if availability.updated_at else None,
    }


def availability_from_document(document: dict) -> CoachAvailability:
    created_at = document.get("createdAt")
    updated_at = document.get("updatedAt")
    return CoachAvailability(
        coach_id=document["coachId"],
        unavailable_dates=frozenset(
            date.fromisoformat(d[:10]) for d in document.get("unavailableDates") or []
        ),
        working_hours=parse_working_hours(document.get("workingHours") or {}),
        time_zone=document.get("timeZone") or DEFAULT_TIME_ZONE,
        created_at=datetime.fromisoformat(created_at) if created_at else None,
        updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
    )


class DocumentAvailabilityRepository:
    """Keyed by coach id, so saving is always an upsert."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def get(self, coach_id: str) -> Optional[CoachAvailability]:
        document = self._store.get(COLLECTION, coach_id)
        return availability_from_document(document) if document else None

    def save(self, availability: CoachAvailability) -> None:
        self._store.upsert(
            COLLECTION,
            availability.coach_id,
            availability_to_document(availability),
        )
