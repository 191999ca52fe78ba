"""Request and response bodies for the HTTP API."""

from pydantic import BaseModel, Field


class ClassCreate(BaseModel):
    name: str


class ReferenceCreate(BaseModel):
    name: str
    image_base64: str = Field(description="Base64 image or a base64 data URL")


class SessionCreate(BaseModel):
    name: str | None = None


class CaptureRequest(BaseModel):
    """A frame captured by the browser plus optional UI-entered keys.

    When ``api_keys`` is omitted the keys managed through ``/credentials``
    are used.
    """

    image_base64: str
    api_keys: list[str] | None = None


class CaptureResponse(BaseModel):
    status: str
    message: str
    marked_ids: list[str]


class CredentialCreate(BaseModel):
    value: str = ""


class CredentialUpdate(BaseModel):
    value: str
