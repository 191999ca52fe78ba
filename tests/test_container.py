"""Tests for container wiring and configuration."""

import asyncio
from pathlib import Path

import pytest

from attendance_tracker.adapters.json_class_store import JsonFileClassStore
from attendance_tracker.config import Settings, parse_store_backend
from attendance_tracker.containers import build_container, build_store


def test_build_container_creates_services(tmp_path: Path) -> None:
    settings = Settings(data_path=str(tmp_path / "classes.json"))

    container = build_container(settings)

    assert container.capture_service is not None
    assert container.capture_service.credential_pool.env_prefix == "OPENAI_API_KEY"
    assert isinstance(container.classroom_service.store, JsonFileClassStore)
    asyncio.run(container.close_resources())


def test_supabase_backend_requires_credentials() -> None:
    settings = Settings(store_backend="supabase", supabase_url=None)

    with pytest.raises(ValueError):
        build_store(settings)


def test_parse_store_backend() -> None:
    assert parse_store_backend(None) == "file"
    assert parse_store_backend(" JSON ") == "file"
    assert parse_store_backend("supabase") == "supabase"
    with pytest.raises(ValueError):
        parse_store_backend("redis")


def test_credentials_in_env_file_are_discovered(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    for name in ("OPENAI_API_KEY", "OPENAI_API_KEY_1", "OPENAI_API_KEY_2"):
        monkeypatch.delenv(name, raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text(
        "OPENAI_API_KEY_1=sk-one\nOPENAI_API_KEY=sk-default\n", encoding="utf-8"
    )
    settings = Settings(_env_file=env_file, data_path=str(tmp_path / "classes.json"))

    container = build_container(settings)

    pool = container.capture_service.credential_pool
    assert pool.resolve([]) == ["sk-one", "sk-default"]
    asyncio.run(container.close_resources())


def test_process_environment_wins_over_env_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("OPENAI_API_KEY_1", raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-process")
    env_file = tmp_path / ".env"
    env_file.write_text("OPENAI_API_KEY=sk-file\n", encoding="utf-8")
    settings = Settings(_env_file=env_file, data_path=str(tmp_path / "classes.json"))

    container = build_container(settings)

    assert container.capture_service.credential_pool.resolve([]) == ["sk-process"]
    asyncio.run(container.close_resources())
