"""Reconcile recognition matches into a session's attendance log."""

from dataclasses import dataclass, field
from datetime import datetime

from attendance_tracker.domain.classes import (
    AttendanceEntry,
    ReferenceIdentity,
    utc_now,
)

NOTHING_NEW_MESSAGE = "No new attendance to mark."


@dataclass(frozen=True)
class Reconciliation:
    """New entries to append plus the names behind the status message."""

    new_entries: list[AttendanceEntry] = field(default_factory=list)
    already_present_names: list[str] = field(default_factory=list)
    newly_present_names: list[str] = field(default_factory=list)

    @property
    def has_updates(self) -> bool:
        return bool(self.newly_present_names or self.already_present_names)

    @property
    def message(self) -> str:
        parts: list[str] = []
        if self.newly_present_names:
            parts.append(f"Marked {', '.join(self.newly_present_names)} as present.")
        if self.already_present_names:
            parts.append(f"{', '.join(self.already_present_names)} already present.")
        return " ".join(parts) if parts else NOTHING_NEW_MESSAGE


def reconcile(
    matches: list[ReferenceIdentity],
    current_attendance: list[AttendanceEntry],
    now: datetime | None = None,
) -> Reconciliation:
    """Split matches into new entries and references already marked present.

    Matches keep the order the matcher returned them in. A reference matched
    more than once in one batch is counted once.
    """
    timestamp = now or utc_now()
    present = {entry.reference_id for entry in current_attendance}
    seen: set[str] = set()
    result = Reconciliation()
    for reference in matches:
        if reference.id in seen:
            continue
        seen.add(reference.id)
        if reference.id in present:
            result.already_present_names.append(reference.name)
            continue
        result.newly_present_names.append(reference.name)
        result.new_entries.append(
            AttendanceEntry(reference_id=reference.id, timestamp=timestamp)
        )
    return result
