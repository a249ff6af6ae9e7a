"""
Session repository over the document store.

Translates between Session snapshots and their stored JSON form. The
stored form uses camelCase keys and ISO-8601 timestamps so documents
read naturally from SQL (`body:"coachId"`) and from clients.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from ...core.scheduling.models import Session, SessionStatus
from ..documents.store import DocumentStore

logger = logging.getLogger(__name__)

COLLECTION = "sessions"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def session_to_document(session: Session) -> dict:
    return {
        "id": str(session.id),
        "coachId": session.coach_id,
        "clientId": session.client_id,
        "date": session.date.isoformat(),
        "duration": session.duration,
        "status": session.status.value,
        "notes": session.notes,
        "canceledBy": session.canceled_by,
        "cancelReason": session.cancel_reason,
        "rescheduledAt": _iso(session.rescheduled_at),
        "previousDate": _iso(session.previous_date),
        "createdAt": _iso(session.created_at),
        "updatedAt": _iso(session.updated_at),
    }


def session_from_document(document: dict) -> Session:
    return Session(
        id=UUID(document["id"]),
        coach_id=document["coachId"],
        client_id=document["clientId"],
        date=datetime.fromisoformat(document["date"]),
        duration=int(document.get("duration", 60)),
        status=SessionStatus(document.get("status", "scheduled")),
        notes=document.get("notes"),
        canceled_by=document.get("canceledBy"),
        cancel_reason=document.get("cancelReason"),
        rescheduled_at=_from_iso(document.get("rescheduledAt")),
        previous_date=_from_iso(document.get("previousDate")),
        created_at=_from_iso(document.get("createdAt")),
        updated_at=_from_iso(document.get("updatedAt")),
    )


class DocumentSessionRepository:
    """
    Session persistence on top of a DocumentStore.

    Sessions are never physically deleted; canceling is a status change
    written back with `update`.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def get(self, session_id: UUID) -> Optional[Session]:
        document = self._store.get(COLLECTION, str(session_id))
        return session_from_document(document) if document else None

    def insert(self, session: Session) -> None:
        self._store.insert(COLLECTION, str(session.id), session_to_document(session))

    def update(self, session: Session) -> None:
        self._store.replace(COLLECTION, str(session.id), session_to_document(session))

    def list_active_for_coach(
        self,
        coach_id: str,
        starts_after: Optional[datetime] = None,
        starts_before: Optional[datetime] = None,
    ) -> list[Session]:
        """
        Non-canceled sessions for a coach.

        Both bounds are inclusive and compare against the session start.
        They are handed to the store, so only the window is read.
        """
        ranges = None
        if starts_after is not None or starts_before is not None:
            ranges = {"date": (starts_after, starts_before)}
        documents = self._store.find(
            COLLECTION,
            filters={"coachId": coach_id},
            exclude={"status": SessionStatus.CANCELED.value},
            ranges=ranges,
        )
        return [session_from_document(doc) for doc in documents]

    def list_for_coach(self, coach_id: str) -> list[Session]:
        documents = self._store.find(COLLECTION, filters={"coachId": coach_id})
        return [session_from_document(doc) for doc in documents]

    def list_for_client(self, client_id: str) -> list[Session]:
        documents = self._store.find(COLLECTION, filters={"clientId": client_id})
        return [session_from_document(doc) for doc in documents]
