"""Supabase-backed class store."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from attendance_tracker.domain.classes import ClassroomDocument
from attendance_tracker.services.classes import ClassStore


@dataclass
class SupabaseClassStore(ClassStore):
    """Stores the class tree as one JSON row in ``classroom_documents``."""

    client: Client
    document_name: str = "default"

    def load(self) -> ClassroomDocument | None:
        """Return the stored document, if a row exists."""
        response = (
            self.client.table("classroom_documents")
            .select("name, payload")
            .eq("name", self.document_name)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return ClassroomDocument.model_validate(response.data[0]["payload"])

    def save(self, document: ClassroomDocument) -> None:
        """Upsert the whole document row."""
        self.client.table("classroom_documents").upsert(
            {
                "name": self.document_name,
                "payload": document.model_dump(mode="json"),
                "updated_at": datetime.now(tz=UTC).isoformat(),
            },
            on_conflict="name",
        ).execute()
