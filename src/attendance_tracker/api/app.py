"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict
from urllib.parse import quote

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse

from attendance_tracker.adapters.uploaded_image_source import UploadedImageSource
from attendance_tracker.api.models import (
    CaptureRequest,
    CaptureResponse,
    ClassCreate,
    CredentialCreate,
    CredentialUpdate,
    ReferenceCreate,
    SessionCreate,
)
from attendance_tracker.app_logging import configure_logging
from attendance_tracker.containers import AppContainer
from attendance_tracker.domain.classes import (
    ClassRecord,
    ReferenceIdentity,
    SessionRecord,
)
from attendance_tracker.domain.errors import (
    CaptureInProgressError,
    ClassNotFoundError,
    CredentialNotFoundError,
    ReferenceNotFoundError,
    SessionNotFoundError,
)
from attendance_tracker.services.export import XLSX_MEDIA_TYPE, export_session

_NOT_FOUND_ERRORS = (
    ClassNotFoundError,
    SessionNotFoundError,
    ReferenceNotFoundError,
    CredentialNotFoundError,
)


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    async def not_found(_: Request, exc: Exception) -> JSONResponse:
        missing = exc.args[0] if exc.args else ""
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": f"Not found: {missing}"},
        )

    for error_type in _NOT_FOUND_ERRORS:
        app.add_exception_handler(error_type, not_found)

    @app.exception_handler(ValueError)
    async def bad_request(_: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)}
        )

    @app.exception_handler(CaptureInProgressError)
    async def conflict(_: Request, exc: CaptureInProgressError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)}
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/classes")
    async def list_classes(request: Request) -> list[ClassRecord]:
        return _container(request).classroom_service.list_classes()

    @app.post("/classes", status_code=status.HTTP_201_CREATED)
    async def add_class(body: ClassCreate, request: Request) -> ClassRecord:
        return _container(request).classroom_service.add_class(body.name)

    @app.get("/classes/{class_id}")
    async def get_class(class_id: str, request: Request) -> ClassRecord:
        return _container(request).classroom_service.get_class(class_id)

    @app.delete("/classes/{class_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_class(class_id: str, request: Request) -> None:
        _container(request).classroom_service.delete_class(class_id)

    @app.post(
        "/classes/{class_id}/references", status_code=status.HTTP_201_CREATED
    )
    async def add_reference(
        class_id: str, body: ReferenceCreate, request: Request
    ) -> ReferenceIdentity:
        return _container(request).classroom_service.add_reference(
            class_id, body.name, body.image_base64
        )

    @app.delete(
        "/classes/{class_id}/references/{reference_id}",
        status_code=status.HTTP_204_NO_CONTENT,
    )
    async def delete_reference(
        class_id: str, reference_id: str, request: Request
    ) -> None:
        """Delete a reference together with its attendance entries."""
        _container(request).classroom_service.delete_reference(class_id, reference_id)

    @app.post("/classes/{class_id}/sessions", status_code=status.HTTP_201_CREATED)
    async def start_session(
        class_id: str, request: Request, body: SessionCreate | None = None
    ) -> SessionRecord:
        name = body.name if body else None
        return _container(request).classroom_service.start_session(class_id, name)

    @app.get("/classes/{class_id}/sessions/{session_id}")
    async def get_session(
        class_id: str, session_id: str, request: Request
    ) -> SessionRecord:
        return _container(request).classroom_service.get_session(class_id, session_id)

    @app.delete(
        "/classes/{class_id}/sessions/{session_id}",
        status_code=status.HTTP_204_NO_CONTENT,
    )
    async def delete_session(class_id: str, session_id: str, request: Request) -> None:
        _container(request).classroom_service.delete_session(class_id, session_id)

    @app.post("/classes/{class_id}/sessions/{session_id}/capture")
    async def capture(
        class_id: str, session_id: str, body: CaptureRequest, request: Request
    ) -> CaptureResponse:
        """Match a captured frame and mark recognised references present."""
        state_container = _container(request)
        ui_keys = (
            body.api_keys
            if body.api_keys is not None
            else state_container.credential_registry.values()
        )
        image_source = UploadedImageSource.from_base64(body.image_base64)
        try:
            result = await state_container.capture_service.capture(
                class_id, session_id, image_source, ui_keys
            )
        finally:
            image_source.stop()
        logger.info(
            "Capture resolved",
            extra={"class_id": class_id, "status": str(result.status)},
        )
        return CaptureResponse(
            status=str(result.status),
            message=result.message,
            marked_ids=result.marked_ids,
        )

    @app.get("/capture/state")
    async def capture_state(request: Request) -> dict[str, str]:
        return {"state": str(_container(request).capture_service.state)}

    @app.get("/classes/{class_id}/sessions/{session_id}/export")
    async def export(class_id: str, session_id: str, request: Request) -> Response:
        """Download the session's attendance as an xlsx workbook."""
        service = _container(request).classroom_service
        record = service.get_class(class_id)
        session = service.get_session(class_id, session_id)
        exported = export_session(record.name, session, record.references)
        return Response(
            content=exported.content,
            media_type=XLSX_MEDIA_TYPE,
            headers={
                "Content-Disposition": (
                    f"attachment; filename*=UTF-8''{quote(exported.filename)}"
                )
            },
        )

    @app.get("/credentials")
    async def list_credentials(request: Request) -> list[dict[str, str]]:
        registry = _container(request).credential_registry
        return [asdict(item) for item in registry.all()]

    @app.post("/credentials", status_code=status.HTTP_201_CREATED)
    async def add_credential(
        request: Request, body: CredentialCreate | None = None
    ) -> dict[str, str]:
        registry = _container(request).credential_registry
        return asdict(registry.add(body.value if body else ""))

    @app.put("/credentials/{credential_id}")
    async def update_credential(
        credential_id: str, body: CredentialUpdate, request: Request
    ) -> dict[str, str]:
        registry = _container(request).credential_registry
        return asdict(registry.update(credential_id, body.value))

    @app.delete("/credentials/{credential_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def remove_credential(credential_id: str, request: Request) -> None:
        _container(request).credential_registry.remove(credential_id)

    return app


def _container(request: Request) -> AppContainer:
    return request.app.state.container
