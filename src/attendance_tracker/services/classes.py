"""Class, reference and session management over the persisted tree."""

import base64
import binascii
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from attendance_tracker.domain.classes import (
    AttendanceEntry,
    ClassRecord,
    ClassroomDocument,
    ReferenceIdentity,
    SessionRecord,
)
from attendance_tracker.domain.errors import (
    ClassNotFoundError,
    ReferenceNotFoundError,
    SessionNotFoundError,
)

logger = logging.getLogger(__name__)


class ClassStore(Protocol):
    """Persistence interface for the whole class/session document."""

    def load(self) -> ClassroomDocument | None:
        """Return the stored document, or None when nothing is stored yet."""

    def save(self, document: ClassroomDocument) -> None:
        """Replace the stored document."""


def default_session_name(now: datetime | None = None) -> str:
    moment = (now or datetime.now()).astimezone()
    return f"Session - {moment.strftime('%Y-%m-%d %H:%M:%S')}"


@dataclass
class ClassroomService:
    """Application service for classes, references and sessions.

    Every mutation builds a new document and hands the whole tree to the
    store. Store failures are logged and the in-memory state keeps working.
    """

    store: ClassStore
    session_namer: Callable[[], str] = field(default=default_session_name)
    _document: ClassroomDocument | None = None

    @property
    def document(self) -> ClassroomDocument:
        if self._document is None:
            self._document = self._load()
        return self._document

    def list_classes(self) -> list[ClassRecord]:
        return list(self.document.classes)

    def get_class(self, class_id: str) -> ClassRecord:
        record = self.document.find_class(class_id)
        if record is None:
            raise ClassNotFoundError(class_id)
        return record

    def get_session(self, class_id: str, session_id: str) -> SessionRecord:
        session = self.get_class(class_id).find_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def add_class(self, name: str) -> ClassRecord:
        cleaned = name.strip()
        if not cleaned:
            raise ValueError("Class name must not be blank")
        record = ClassRecord(name=cleaned)
        self._replace([*self.document.classes, record])
        return record

    def delete_class(self, class_id: str) -> None:
        self.get_class(class_id)
        self._replace([c for c in self.document.classes if c.id != class_id])

    def add_reference(
        self, class_id: str, name: str, image_base64: str
    ) -> ReferenceIdentity:
        """Enroll a person into a class."""
        cleaned = name.strip()
        if not cleaned:
            raise ValueError("Reference name must not be blank")
        _validate_image(image_base64)
        record = self.get_class(class_id)
        reference = ReferenceIdentity(name=cleaned, image_base64=image_base64)
        updated = record.model_copy(
            update={"references": [*record.references, reference]}
        )
        self._replace_class(updated)
        return reference

    def delete_reference(self, class_id: str, reference_id: str) -> None:
        """Remove a reference and every attendance entry that points at it."""
        record = self.get_class(class_id)
        if not any(ref.id == reference_id for ref in record.references):
            raise ReferenceNotFoundError(reference_id)
        sessions = [
            session.model_copy(
                update={
                    "attendance": [
                        entry
                        for entry in session.attendance
                        if entry.reference_id != reference_id
                    ]
                }
            )
            for session in record.sessions
        ]
        updated = record.model_copy(
            update={
                "references": [
                    ref for ref in record.references if ref.id != reference_id
                ],
                "sessions": sessions,
            }
        )
        self._replace_class(updated)

    def start_session(self, class_id: str, name: str | None = None) -> SessionRecord:
        """Create a session and place it first in the class's session list."""
        record = self.get_class(class_id)
        session = SessionRecord(name=(name or "").strip() or self.session_namer())
        updated = record.model_copy(update={"sessions": [session, *record.sessions]})
        self._replace_class(updated)
        return session

    def delete_session(self, class_id: str, session_id: str) -> None:
        self.get_session(class_id, session_id)
        record = self.get_class(class_id)
        updated = record.model_copy(
            update={"sessions": [s for s in record.sessions if s.id != session_id]}
        )
        self._replace_class(updated)

    def append_attendance(
        self, class_id: str, session_id: str, entries: list[AttendanceEntry]
    ) -> bool:
        """Append entries to a session by id.

        Returns False without changing anything when the class or session no
        longer exists. Entries for references already present are skipped.
        """
        record = self.document.find_class(class_id)
        session = record.find_session(session_id) if record else None
        if record is None or session is None:
            logger.info(
                "Session vanished before attendance could be appended",
                extra={"class_id": class_id, "session_id": session_id},
            )
            return False
        present = session.present_ids()
        additions: list[AttendanceEntry] = []
        for entry in entries:
            if entry.reference_id in present:
                continue
            present.add(entry.reference_id)
            additions.append(entry)
        if not additions:
            return True
        updated_session = session.model_copy(
            update={"attendance": [*session.attendance, *additions]}
        )
        updated = record.model_copy(
            update={
                "sessions": [
                    updated_session if s.id == session_id else s
                    for s in record.sessions
                ]
            }
        )
        self._replace_class(updated)
        return True

    def _replace_class(self, updated: ClassRecord) -> None:
        self._replace(
            [updated if c.id == updated.id else c for c in self.document.classes]
        )

    def _replace(self, classes: list[ClassRecord]) -> None:
        self._document = ClassroomDocument(classes=classes)
        try:
            self.store.save(self._document)
        except Exception:
            logger.exception("Failed to save classes")

    def _load(self) -> ClassroomDocument:
        try:
            loaded = self.store.load()
        except Exception:
            logger.exception("Failed to load classes")
            return ClassroomDocument()
        return loaded or ClassroomDocument()


def _validate_image(image_base64: str) -> None:
    """Reject reference images that are not base64 or a base64 data URL."""
    payload = image_base64
    if payload.startswith("data:"):
        _, _, payload = payload.partition(",")
    if not payload:
        raise ValueError("Reference image must not be empty")
    try:
        base64.b64decode(payload, validate=True)
    except binascii.Error as exc:
        raise ValueError("Reference image is not valid base64") from exc
