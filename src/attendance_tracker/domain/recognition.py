"""Models for recognition requests and their outcomes."""

from dataclasses import dataclass, field
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from attendance_tracker.domain.classes import ReferenceIdentity


class RecognitionMatch(BaseModel):
    """Single match reported by the remote service."""

    model_config = ConfigDict(populate_by_name=True)

    reference_index: int = Field(alias="referenceIndex")


class RecognitionResponse(BaseModel):
    """Structured output returned by the remote service."""

    matches: list[RecognitionMatch]


class MatchError(StrEnum):
    """Terminal error classifications of a recognition call."""

    NO_REFERENCES = "NO_REFERENCES"
    NO_CREDENTIALS = "NO_CREDENTIALS"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    ALL_CREDENTIALS_EXHAUSTED = "ALL_CREDENTIALS_EXHAUSTED"


@dataclass(frozen=True)
class MatchOutcome:
    """Result of one recognition call.

    ``failed_slot`` is the 1-based credential slot and is only set for
    ``MatchError.PROVIDER_ERROR``.
    """

    matches: list[ReferenceIdentity] = field(default_factory=list)
    error: MatchError | None = None
    failed_slot: int | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
