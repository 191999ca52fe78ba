"""Tests for class, reference and session management."""

from datetime import UTC, datetime

import pytest

from attendance_tracker.domain.classes import AttendanceEntry
from attendance_tracker.domain.errors import (
    ClassNotFoundError,
    ReferenceNotFoundError,
    SessionNotFoundError,
)
from attendance_tracker.services.classes import ClassroomService
from tests.conftest import JPEG_BASE64, InMemoryClassStore

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


def test_add_class_persists_whole_document(
    classroom_service: ClassroomService, class_store: InMemoryClassStore
) -> None:
    record = classroom_service.add_class("  Biology  ")

    assert record.name == "Biology"
    assert class_store.saves == 1
    assert class_store.document is not None
    assert class_store.document.classes[0].id == record.id


def test_add_class_rejects_blank_name(classroom_service: ClassroomService) -> None:
    with pytest.raises(ValueError):
        classroom_service.add_class("   ")


def test_delete_class(classroom_service: ClassroomService) -> None:
    record = classroom_service.add_class("Biology")

    classroom_service.delete_class(record.id)

    assert classroom_service.list_classes() == []
    with pytest.raises(ClassNotFoundError):
        classroom_service.get_class(record.id)


def test_add_reference_rejects_invalid_image(
    classroom_service: ClassroomService,
) -> None:
    record = classroom_service.add_class("Biology")

    with pytest.raises(ValueError):
        classroom_service.add_reference(record.id, "Ada", "not base64!")


def test_add_reference_accepts_data_url(classroom_service: ClassroomService) -> None:
    record = classroom_service.add_class("Biology")

    reference = classroom_service.add_reference(
        record.id, "Ada", f"data:image/jpeg;base64,{JPEG_BASE64}"
    )

    assert classroom_service.get_class(record.id).references == [reference]


def test_new_sessions_are_listed_first(classroom_service: ClassroomService) -> None:
    record = classroom_service.add_class("Biology")

    first = classroom_service.start_session(record.id)
    second = classroom_service.start_session(record.id, name="Lab")

    sessions = classroom_service.get_class(record.id).sessions
    assert [s.id for s in sessions] == [second.id, first.id]
    assert first.name == "Session - test"
    assert second.name == "Lab"


def test_delete_session(classroom_service: ClassroomService) -> None:
    record = classroom_service.add_class("Biology")
    session = classroom_service.start_session(record.id)

    classroom_service.delete_session(record.id, session.id)

    with pytest.raises(SessionNotFoundError):
        classroom_service.get_session(record.id, session.id)


def test_delete_reference_cascades_to_all_sessions(
    classroom_service: ClassroomService,
) -> None:
    record = classroom_service.add_class("Biology")
    ada = classroom_service.add_reference(record.id, "Ada", JPEG_BASE64)
    bob = classroom_service.add_reference(record.id, "Bob", JPEG_BASE64)
    monday = classroom_service.start_session(record.id)
    tuesday = classroom_service.start_session(record.id)
    for session in (monday, tuesday):
        classroom_service.append_attendance(
            record.id,
            session.id,
            [
                AttendanceEntry(reference_id=ada.id, timestamp=NOW),
                AttendanceEntry(reference_id=bob.id, timestamp=NOW),
            ],
        )

    classroom_service.delete_reference(record.id, ada.id)

    updated = classroom_service.get_class(record.id)
    assert [ref.id for ref in updated.references] == [bob.id]
    for session in updated.sessions:
        assert [entry.reference_id for entry in session.attendance] == [bob.id]


def test_delete_unknown_reference(classroom_service: ClassroomService) -> None:
    record = classroom_service.add_class("Biology")

    with pytest.raises(ReferenceNotFoundError):
        classroom_service.delete_reference(record.id, "ref_missing")


def test_append_attendance_keeps_ids_unique(
    classroom_service: ClassroomService,
) -> None:
    record = classroom_service.add_class("Biology")
    session = classroom_service.start_session(record.id)
    entry = AttendanceEntry(reference_id="ref_A", timestamp=NOW)

    classroom_service.append_attendance(record.id, session.id, [entry])
    classroom_service.append_attendance(record.id, session.id, [entry, entry])

    stored = classroom_service.get_session(record.id, session.id)
    assert [e.reference_id for e in stored.attendance] == ["ref_A"]


def test_append_attendance_to_deleted_session_is_noop(
    classroom_service: ClassroomService, class_store: InMemoryClassStore
) -> None:
    record = classroom_service.add_class("Biology")
    session = classroom_service.start_session(record.id)
    classroom_service.delete_session(record.id, session.id)
    saves_before = class_store.saves

    appended = classroom_service.append_attendance(
        record.id, session.id, [AttendanceEntry(reference_id="ref_A", timestamp=NOW)]
    )

    assert appended is False
    assert class_store.saves == saves_before


def test_load_failure_degrades_to_empty_state() -> None:
    service = ClassroomService(InMemoryClassStore(fail_load=True))

    assert service.list_classes() == []


def test_save_failure_keeps_in_memory_state() -> None:
    service = ClassroomService(InMemoryClassStore(fail_save=True))

    record = service.add_class("Biology")

    assert service.get_class(record.id).name == "Biology"


def test_service_loads_existing_document(class_store: InMemoryClassStore) -> None:
    ClassroomService(class_store).add_class("Biology")

    reloaded = ClassroomService(class_store)

    assert [c.name for c in reloaded.list_classes()] == ["Biology"]
