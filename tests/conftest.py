"""Shared test fixtures."""

import base64
from collections.abc import Callable
from dataclasses import dataclass, field

import pytest

from attendance_tracker.config import Settings
from attendance_tracker.containers import AppContainer
from attendance_tracker.domain.classes import ClassroomDocument
from attendance_tracker.domain.errors import CaptureUnavailableError
from attendance_tracker.services.capture import CaptureService
from attendance_tracker.services.classes import ClassroomService, ClassStore
from attendance_tracker.services.credentials import CredentialPool, CredentialRegistry
from attendance_tracker.services.recognition import (
    RecognitionClient,
    RecognitionMatcher,
)

JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg"
JPEG_BASE64 = base64.b64encode(JPEG_BYTES).decode("utf-8")


class QuotaExceededError(Exception):
    """Stands in for a provider's HTTP 429 error."""

    status_code = 429


@dataclass
class FakeRecognitionClient(RecognitionClient):
    """Fake recognition client that replays queued results per call.

    Each queued item is either a response payload or an exception to raise.
    """

    results: list[object] = field(default_factory=list)
    calls: list[dict[str, object]] = field(default_factory=list)
    on_compare: Callable[[], None] | None = None

    async def compare(  # noqa: PLR0913
        self,
        *,
        api_key: str,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_urls: list[str],
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        self.calls.append(
            {"api_key": api_key, "model": model, "image_data_urls": image_data_urls}
        )
        if self.on_compare is not None:
            self.on_compare()
        result = self.results.pop(0) if self.results else {"matches": []}
        if isinstance(result, Exception):
            raise result
        return result

    def is_quota_exceeded(self, error: Exception) -> bool:
        return getattr(error, "status_code", None) == 429


@dataclass
class InMemoryClassStore(ClassStore):
    """In-memory class store that records every save."""

    document: ClassroomDocument | None = None
    saves: int = 0
    fail_load: bool = False
    fail_save: bool = False

    def load(self) -> ClassroomDocument | None:
        if self.fail_load:
            raise OSError("storage unavailable")
        return self.document

    def save(self, document: ClassroomDocument) -> None:
        if self.fail_save:
            raise OSError("storage full")
        self.saves += 1
        self.document = document


@dataclass
class FakeImageSource:
    """Image source returning a fixed frame, or failing when not started."""

    frame: bytes = JPEG_BYTES
    started: bool = True

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.started = False

    def acquire(self) -> bytes:
        if not self.started:
            raise CaptureUnavailableError("not started")
        return self.frame


@pytest.fixture
def settings() -> Settings:
    return Settings(openai_model="gpt-5.2", credential_env_prefix="TEST_API_KEY")


@pytest.fixture
def class_store() -> InMemoryClassStore:
    return InMemoryClassStore()


@pytest.fixture
def classroom_service(class_store: InMemoryClassStore) -> ClassroomService:
    return ClassroomService(class_store, session_namer=lambda: "Session - test")


@pytest.fixture
def recognition_client() -> FakeRecognitionClient:
    return FakeRecognitionClient()


@pytest.fixture
def container(
    settings: Settings,
    classroom_service: ClassroomService,
    recognition_client: FakeRecognitionClient,
) -> AppContainer:
    matcher = RecognitionMatcher(client=recognition_client, model=settings.openai_model)
    capture_service = CaptureService(
        classroom_service=classroom_service,
        matcher=matcher,
        credential_pool=CredentialPool(env_prefix="TEST_API_KEY", environ={}),
    )
    credential_registry = CredentialRegistry(
        is_locked=lambda: capture_service.in_progress
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        classroom_service=classroom_service,
        credential_registry=credential_registry,
        capture_service=capture_service,
        close_resources=close_resources,
    )
