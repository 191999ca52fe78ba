"""Face matching against class references with credential failover."""

import base64
import logging
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from attendance_tracker.domain.classes import ReferenceIdentity
from attendance_tracker.domain.recognition import (
    MatchError,
    MatchOutcome,
    RecognitionResponse,
)

logger = logging.getLogger(__name__)

RECOGNITION_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "matches": {
            "type": "array",
            "description": (
                "An array of all detected matches between live faces "
                "and reference photos."
            ),
            "items": {
                "type": "object",
                "properties": {
                    "referenceIndex": {
                        "type": "integer",
                        "description": (
                            "The 0-based index of the matching reference image."
                        ),
                    },
                },
                "required": ["referenceIndex"],
                "additionalProperties": False,
            },
        }
    },
    "required": ["matches"],
    "additionalProperties": False,
}

RECOGNITION_PROMPT = """\
You are a highly advanced facial recognition and liveness detection system. \
The first image is a live camera capture which may contain multiple people. \
The subsequent images are a set of reference photos for class members.

Your tasks are:
1. Liveness detection: analyze the first image to identify all live human faces. \
Ignore any face that is a non-live presentation, such as a printed photo of a \
person, a face on a screen, a statue, or a drawing.
2. Facial recognition: for each live face in the first image, compare it \
against every reference photo.
3. Report matches: respond with a JSON object listing every match you find.

The JSON response must follow this schema: {"matches": [{"referenceIndex": N}]}, \
where N is the 0-based index of the matching reference photo (the first \
reference photo is index 0).

- If several people from the reference set are in the photo, include one \
object for each of them in "matches".
- If no live face matches any reference photo, respond with {"matches": []}.
- If there are no live human faces in the first image, respond with {"matches": []}.
"""


class RecognitionClient(Protocol):
    """Interface for the remote multi-image face matching call."""

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
        """Return the structured response for one request."""

    def is_quota_exceeded(self, error: Exception) -> bool:
        """Return True when the error is a rate-limit or quota rejection."""


@dataclass
class RecognitionMatcher:
    """Run recognition requests, rotating credentials on quota failures.

    ``cursor`` survives across calls so consecutive requests keep rotating
    instead of always starting from the first credential. It only moves when
    a credential is rejected for quota reasons.
    """

    client: RecognitionClient
    model: str
    reasoning_effort: str | None = None
    store: bool = False
    cursor: int = 0

    async def match(
        self,
        captured_image: bytes,
        references: list[ReferenceIdentity],
        credentials: list[str],
    ) -> MatchOutcome:
        """Match live faces in the captured image against the references."""
        if not references:
            return MatchOutcome(error=MatchError.NO_REFERENCES)
        if not credentials:
            return MatchOutcome(error=MatchError.NO_CREDENTIALS)

        image_data_urls = [_to_data_url(captured_image)]
        image_data_urls.extend(
            _reference_data_url(reference.image_base64) for reference in references
        )

        total = len(credentials)
        for _ in range(total):
            if self.cursor >= total:
                self.cursor = 0
            api_key = credentials[self.cursor]
            try:
                raw = await self.client.compare(
                    api_key=api_key,
                    model=self.model,
                    reasoning_effort=self.reasoning_effort,
                    store=self.store,
                    image_data_urls=image_data_urls,
                    schema=RECOGNITION_SCHEMA,
                    prompt=RECOGNITION_PROMPT,
                )
                response = RecognitionResponse.model_validate(raw)
            except ValidationError:
                logger.exception(
                    "Recognition response did not match the schema",
                    extra={"credential_slot": self.cursor + 1},
                )
                return MatchOutcome(
                    error=MatchError.PROVIDER_ERROR, failed_slot=self.cursor + 1
                )
            except Exception as exc:
                if self.client.is_quota_exceeded(exc):
                    logger.warning(
                        "API key #%d exceeded its quota, trying next key",
                        self.cursor + 1,
                    )
                    self.cursor = (self.cursor + 1) % total
                    continue
                logger.exception(
                    "Recognition call failed",
                    extra={"credential_slot": self.cursor + 1},
                )
                return MatchOutcome(
                    error=MatchError.PROVIDER_ERROR, failed_slot=self.cursor + 1
                )
            return MatchOutcome(matches=_resolve_matches(response, references))

        return MatchOutcome(error=MatchError.ALL_CREDENTIALS_EXHAUSTED)


def _resolve_matches(
    response: RecognitionResponse, references: list[ReferenceIdentity]
) -> list[ReferenceIdentity]:
    """Map reported indices back to references, dropping out-of-range ones."""
    matched: list[ReferenceIdentity] = []
    for item in response.matches:
        index = item.reference_index
        if 0 <= index < len(references):
            matched.append(references[index])
        else:
            logger.debug("Ignoring out-of-range reference index %d", index)
    return matched


def _reference_data_url(image_base64: str) -> str:
    """Return a data URL for a stored reference image."""
    if image_base64.startswith("data:"):
        return image_base64
    return _to_data_url(base64.b64decode(image_base64))


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
