"""Dependency container wiring for the application."""

import os
from collections import ChainMap
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from supabase import create_client

from attendance_tracker.adapters.json_class_store import JsonFileClassStore
from attendance_tracker.adapters.openai_recognition_client import (
    OpenAIRecognitionClient,
)
from attendance_tracker.adapters.supabase_class_store import SupabaseClassStore
from attendance_tracker.config import Settings, parse_store_backend
from attendance_tracker.services.capture import CaptureService
from attendance_tracker.services.classes import ClassroomService, ClassStore
from attendance_tracker.services.credentials import CredentialPool, CredentialRegistry
from attendance_tracker.services.recognition import RecognitionMatcher


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    classroom_service: ClassroomService
    credential_registry: CredentialRegistry
    capture_service: CaptureService
    close_resources: Callable[[], Awaitable[None]]


def build_store(settings: Settings) -> ClassStore:
    """Create the configured class store backend."""
    if parse_store_backend(settings.store_backend) == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError("Supabase store requires SUPABASE_URL and key")
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseClassStore(client, document_name=settings.supabase_document)
    return JsonFileClassStore(Path(settings.data_path))


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    classroom_service = ClassroomService(build_store(resolved_settings))
    recognition_client = OpenAIRecognitionClient.create()
    matcher = RecognitionMatcher(
        client=recognition_client,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )
    capture_service = CaptureService(
        classroom_service=classroom_service,
        matcher=matcher,
        credential_pool=CredentialPool(
            env_prefix=resolved_settings.credential_env_prefix,
            environ=ChainMap(os.environ, resolved_settings.dotenv_extras()),
        ),
    )
    credential_registry = CredentialRegistry(
        is_locked=lambda: capture_service.in_progress
    )

    async def close_resources() -> None:
        await recognition_client.close()

    return AppContainer(
        settings=resolved_settings,
        classroom_service=classroom_service,
        credential_registry=credential_registry,
        capture_service=capture_service,
        close_resources=close_resources,
    )
