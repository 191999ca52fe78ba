"""Models for the persisted class and session tree."""

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def new_id(kind: str) -> str:
    """Return a fresh identifier such as ``class_3f2a...``."""
    return f"{kind}_{uuid4().hex}"


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


class ReferenceIdentity(BaseModel):
    """One enrolled person and the photo used as a comparison target."""

    id: str = Field(default_factory=lambda: new_id("ref"))
    name: str
    image_base64: str


class AttendanceEntry(BaseModel):
    """Timestamped confirmation that a reference was present in a session."""

    model_config = ConfigDict(frozen=True)

    reference_id: str
    timestamp: datetime = Field(default_factory=utc_now)


class SessionRecord(BaseModel):
    """One attendance-taking occasion for a class."""

    id: str = Field(default_factory=lambda: new_id("session"))
    name: str
    created_at: datetime = Field(default_factory=utc_now)
    attendance: list[AttendanceEntry] = Field(default_factory=list)

    def present_ids(self) -> set[str]:
        """Return the reference ids already marked present."""
        return {entry.reference_id for entry in self.attendance}


class ClassRecord(BaseModel):
    """Named group of enrolled references with its sessions, newest first."""

    id: str = Field(default_factory=lambda: new_id("class"))
    name: str
    references: list[ReferenceIdentity] = Field(default_factory=list)
    sessions: list[SessionRecord] = Field(default_factory=list)

    def find_session(self, session_id: str) -> SessionRecord | None:
        for session in self.sessions:
            if session.id == session_id:
                return session
        return None


class ClassroomDocument(BaseModel):
    """The whole persisted tree, rewritten on every mutation."""

    classes: list[ClassRecord] = Field(default_factory=list)

    def find_class(self, class_id: str) -> ClassRecord | None:
        for record in self.classes:
            if record.id == class_id:
                return record
        return None
