from __future__ import annotations

from pathlib import Path

import pytest

from atelier_engine.providers import default_gateway
from atelier_engine.providers.dryrun import DryRunGateway
from atelier_engine.providers.gemini import GeminiGateway
from atelier_engine.settings import load_settings

_ENV_KEYS = (
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "ATELIER_IMAGE_MODEL",
    "ATELIER_EDIT_MODEL",
    "ATELIER_GATEWAY",
    "ATELIER_HOME",
    "ATELIER_HISTORY_PATH",
    "ATELIER_EVENTS_PATH",
    "ATELIER_LOG_LEVEL",
    "ATELIER_THUMBNAIL_SIZE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # Registered first so values written by load_dotenv are undone after the test.
    for key in _ENV_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


def test_defaults_under_atelier_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ATELIER_HOME", str(tmp_path))

    settings = load_settings(tmp_path / "missing.env")

    assert settings.api_key is None
    assert settings.gateway == "gemini"
    assert settings.history_path == tmp_path / "atelier-image-history.json"
    assert settings.log_dir == tmp_path / "logs"
    assert settings.events_path is None
    assert settings.thumbnail_size == 128


def test_env_file_and_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "# local settings",
                "export GOOGLE_API_KEY='from-file'",
                "ATELIER_GATEWAY=dryrun",
                "ATELIER_THUMBNAIL_SIZE=nope",
                f"ATELIER_EVENTS_PATH={tmp_path / 'events.jsonl'}",
            ]
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("ATELIER_EDIT_MODEL", "gemini-custom-image")

    settings = load_settings(env_path)

    assert settings.api_key == "from-file"
    assert settings.gateway == "dryrun"
    assert settings.edit_model == "gemini-custom-image"
    assert settings.thumbnail_size == 128
    assert settings.events_path == tmp_path / "events.jsonl"


def test_gateway_override_and_factory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "key")

    assert isinstance(default_gateway(load_settings(tmp_path / "none.env", gateway="dryrun")), DryRunGateway)
    gateway = default_gateway(load_settings(tmp_path / "none.env"))
    assert isinstance(gateway, GeminiGateway)
    assert gateway.image_model == "imagen-4.0-generate-001"


def test_unknown_gateway_falls_back_to_gemini(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ATELIER_GATEWAY", "stable-diffusion")
    assert load_settings(tmp_path / "none.env").gateway == "gemini"
