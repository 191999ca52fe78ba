"""Models for UI-entered API credentials."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Credential:
    """API key entered in the UI; the value may still be blank."""

    id: str
    value: str
