"""Image source fed with a frame uploaded by the browser."""

import base64
import binascii
from dataclasses import dataclass

from attendance_tracker.domain.errors import CaptureUnavailableError
from attendance_tracker.services.capture import ImageSource


@dataclass
class UploadedImageSource(ImageSource):
    """Serves the still frame the browser captured from its camera."""

    frame: bytes | None = None
    started: bool = False

    @classmethod
    def from_base64(cls, payload: str) -> "UploadedImageSource":
        """Build a started source from base64 or a base64 data URL.

        An undecodable payload yields a source whose ``acquire`` fails.
        """
        data = payload.split(",", 1)[1] if payload.startswith("data:") else payload
        try:
            frame = base64.b64decode(data, validate=True)
        except binascii.Error:
            frame = None
        source = cls(frame=frame or None)
        source.start()
        return source

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.started = False
        self.frame = None

    def acquire(self) -> bytes:
        if not self.started:
            raise CaptureUnavailableError("Image source is not started")
        if not self.frame:
            raise CaptureUnavailableError("No frame available")
        return self.frame
