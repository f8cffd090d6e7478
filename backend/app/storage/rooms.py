import logging
from typing import Any, Dict, Optional
from uuid import uuid4

from app.db.models import RoomRecord
from app.db.session import SessionLocal

log = logging.getLogger(__name__)

ROOMS = "rooms"


class RoomStore:
    """
    Keyed JSON documents under the `rooms` collection.

    push() allocates a new empty record and returns its key; update() merges
    top-level fields into it. Together they create a room in two steps, the
    key being known before the document is written.
    """

    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    def push(self, collection: str = ROOMS) -> str:
        if collection != ROOMS:
            raise ValueError(f"Unknown collection: {collection!r}")
        key = uuid4().hex
        with self._session_factory() as db:
            db.add(RoomRecord(id=key, data={}))
            db.commit()
        return key

    def update(self, key: str, fields: Dict[str, Any]) -> None:
        with self._session_factory() as db:
            record = db.get(RoomRecord, key)
            if record is None:
                raise KeyError(f"No room with key {key!r}")
            merged = dict(record.data or {})
            merged.update(fields)
            record.data = merged
            if "roomCode" in fields:
                record.room_code = fields["roomCode"]
            if "status" in fields:
                record.status = fields["status"]
            db.commit()
        log.debug("Updated room %s (%s)", key, ", ".join(sorted(fields)))

    def delete(self, key: str) -> None:
        with self._session_factory() as db:
            record = db.get(RoomRecord, key)
            if record is not None:
                db.delete(record)
                db.commit()
        log.debug("Deleted room %s", key)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._session_factory() as db:
            record = db.get(RoomRecord, key)
            return dict(record.data) if record is not None else None
