"""Domain exceptions raised by the attendance services."""


class ClassNotFoundError(KeyError):
    """Raised when a class id does not exist."""


class SessionNotFoundError(KeyError):
    """Raised when a session id does not exist in its class."""


class ReferenceNotFoundError(KeyError):
    """Raised when a reference id does not exist in its class."""


class CredentialNotFoundError(KeyError):
    """Raised when a credential id is not registered."""


class CaptureInProgressError(RuntimeError):
    """Raised when a capture is requested while another one is outstanding."""


class CaptureUnavailableError(RuntimeError):
    """Raised when the image source cannot produce a frame."""
