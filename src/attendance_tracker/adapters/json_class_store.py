"""JSON file backed class store."""

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from attendance_tracker.domain.classes import ClassroomDocument
from attendance_tracker.services.classes import ClassStore


@dataclass
class JsonFileClassStore(ClassStore):
    """Keeps the whole class tree in one JSON file."""

    path: Path

    def load(self) -> ClassroomDocument | None:
        """Return the stored document, if the file exists."""
        if not self.path.exists():
            return None
        return ClassroomDocument.model_validate_json(
            self.path.read_text(encoding="utf-8")
        )

    def save(self, document: ClassroomDocument) -> None:
        """Write the document to a temp file and swap it into place."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(document.model_dump_json())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
