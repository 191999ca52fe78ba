"""Credential discovery and the UI-managed key list."""

import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from attendance_tracker.domain.classes import new_id
from attendance_tracker.domain.credentials import Credential
from attendance_tracker.domain.errors import (
    CaptureInProgressError,
    CredentialNotFoundError,
)


@dataclass
class CredentialPool:
    """Resolve the ordered, deduplicated credentials for a recognition call."""

    env_prefix: str = "OPENAI_API_KEY"
    environ: Mapping[str, str] = field(default_factory=lambda: os.environ)

    def resolve(self, ui_credentials: list[str]) -> list[str]:
        """Return UI values first, then environment values, without blanks."""
        candidates = [value.strip() for value in ui_credentials if value]
        candidates.extend(self.discover())
        return list(dict.fromkeys(value for value in candidates if value))

    def discover(self) -> list[str]:
        """Return numbered keys up to the first gap, then the default key."""
        found: list[str] = []
        index = 1
        while True:
            value = (self.environ.get(f"{self.env_prefix}_{index}") or "").strip()
            if not value:
                break
            found.append(value)
            index += 1
        default = (self.environ.get(self.env_prefix) or "").strip()
        if default:
            found.append(default)
        return found


@dataclass
class CredentialRegistry:
    """In-memory list of keys the user manages from the UI."""

    is_locked: Callable[[], bool] = field(default=lambda: False)
    _credentials: list[Credential] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self._credentials:
            self._credentials.append(Credential(id=new_id("key"), value=""))

    def all(self) -> list[Credential]:
        return list(self._credentials)

    def values(self) -> list[str]:
        """Return the non-blank values in entry order."""
        return [item.value for item in self._credentials if item.value.strip()]

    def add(self, value: str = "") -> Credential:
        self._ensure_unlocked()
        credential = Credential(id=new_id("key"), value=value)
        self._credentials.append(credential)
        return credential

    def update(self, credential_id: str, value: str) -> Credential:
        self._ensure_unlocked()
        index = self._index_of(credential_id)
        updated = Credential(id=credential_id, value=value)
        self._credentials[index] = updated
        return updated

    def remove(self, credential_id: str) -> None:
        self._ensure_unlocked()
        del self._credentials[self._index_of(credential_id)]

    def _index_of(self, credential_id: str) -> int:
        for index, item in enumerate(self._credentials):
            if item.id == credential_id:
                return index
        raise CredentialNotFoundError(credential_id)

    def _ensure_unlocked(self) -> None:
        if self.is_locked():
            raise CaptureInProgressError("Credentials cannot change during a capture")
