"""Capture orchestration: frame -> recognition -> attendance."""

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

from attendance_tracker.domain.classes import ReferenceIdentity
from attendance_tracker.domain.errors import (
    CaptureInProgressError,
    CaptureUnavailableError,
)
from attendance_tracker.domain.recognition import MatchError, MatchOutcome
from attendance_tracker.services.attendance import reconcile
from attendance_tracker.services.classes import ClassroomService
from attendance_tracker.services.credentials import CredentialPool
from attendance_tracker.services.recognition import RecognitionMatcher

logger = logging.getLogger(__name__)


class ImageSource(Protocol):
    """Produces still frames from a camera-like device."""

    def start(self) -> None:
        """Acquire the device."""

    def stop(self) -> None:
        """Release the device."""

    def acquire(self) -> bytes:
        """Return the current frame or raise CaptureUnavailableError."""


class CaptureState(StrEnum):
    IDLE = "IDLE"
    REQUESTING = "REQUESTING"
    RESOLVED = "RESOLVED"
    FAILED = "FAILED"


class ComparisonStatus(StrEnum):
    IDLE = "IDLE"
    CHECKING = "CHECKING"
    MATCH = "MATCH"
    NO_MATCH = "NO_MATCH"
    ERROR = "ERROR"


@dataclass(frozen=True)
class CaptureResult:
    """User-facing result of one capture attempt."""

    status: ComparisonStatus
    message: str
    marked_ids: list[str] = field(default_factory=list)


CAPTURE_UNAVAILABLE_MESSAGE = "Could not capture an image from the camera."
NO_MATCH_MESSAGE = "No match found in this class."
SESSION_GONE_MESSAGE = "Session no longer exists."


@dataclass
class CaptureService:
    """Runs one capture at a time through recognition and reconciliation."""

    classroom_service: ClassroomService
    matcher: RecognitionMatcher
    credential_pool: CredentialPool
    state: CaptureState = CaptureState.IDLE

    @property
    def in_progress(self) -> bool:
        return self.state is CaptureState.REQUESTING

    async def capture(
        self,
        class_id: str,
        session_id: str,
        image_source: ImageSource,
        ui_credentials: list[str],
    ) -> CaptureResult:
        """Capture a frame and mark recognised references as present."""
        if self.in_progress:
            raise CaptureInProgressError("A capture is already being processed")
        record = self.classroom_service.get_class(class_id)
        self.classroom_service.get_session(class_id, session_id)

        self.state = CaptureState.REQUESTING
        try:
            result = await self._run(
                class_id, session_id, record.references, image_source, ui_credentials
            )
        except BaseException:
            self.state = CaptureState.FAILED
            raise
        self.state = (
            CaptureState.FAILED
            if result.status is ComparisonStatus.ERROR
            else CaptureState.RESOLVED
        )
        return result

    async def _run(
        self,
        class_id: str,
        session_id: str,
        references: list[ReferenceIdentity],
        image_source: ImageSource,
        ui_credentials: list[str],
    ) -> CaptureResult:
        try:
            image = image_source.acquire()
        except CaptureUnavailableError:
            logger.warning("Video stream not available for capture")
            return CaptureResult(ComparisonStatus.ERROR, CAPTURE_UNAVAILABLE_MESSAGE)

        credentials = self.credential_pool.resolve(ui_credentials)
        outcome = await self.matcher.match(image, references, credentials)
        if not outcome.ok:
            return CaptureResult(ComparisonStatus.ERROR, self._error_message(outcome))
        if not outcome.matches:
            return CaptureResult(ComparisonStatus.NO_MATCH, NO_MATCH_MESSAGE)

        # Re-read the session: attendance may have changed while we waited.
        record = self.classroom_service.document.find_class(class_id)
        current = record.find_session(session_id) if record else None
        if current is None:
            logger.info(
                "Session deleted during recognition",
                extra={"class_id": class_id, "session_id": session_id},
            )
            return CaptureResult(ComparisonStatus.ERROR, SESSION_GONE_MESSAGE)
        reconciliation = reconcile(outcome.matches, current.attendance)
        if reconciliation.new_entries:
            self.classroom_service.append_attendance(
                class_id, session_id, reconciliation.new_entries
            )
        status = (
            ComparisonStatus.MATCH
            if reconciliation.has_updates
            else ComparisonStatus.NO_MATCH
        )
        return CaptureResult(
            status,
            reconciliation.message,
            [entry.reference_id for entry in reconciliation.new_entries],
        )

    def _error_message(self, outcome: MatchOutcome) -> str:
        if outcome.error is MatchError.NO_REFERENCES:
            return "No references in the class to compare against."
        if outcome.error is MatchError.NO_CREDENTIALS:
            prefix = self.credential_pool.env_prefix
            return (
                "No API keys found. Add keys in the UI or set "
                f"{prefix} environment variables."
            )
        if outcome.error is MatchError.PROVIDER_ERROR:
            return (
                f"API Error with Key #{outcome.failed_slot}. Check its validity "
                "and ensure its project has billing enabled."
            )
        return "All available API keys have failed or exceeded their quotas."
