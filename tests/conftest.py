"""Shared pytest fixtures for the captioning client tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from lens_lyric.config import GeminiSettings, MediaLimitSettings, Settings
from lens_lyric.preview import PreviewRegistry


@pytest.fixture(autouse=True)
def _no_ambient_credentials(monkeypatch):
    for name in ("LENS_gemini__api_key", "LENS_GEMINI__API_KEY", "GEMINI_API_KEY", "API_KEY"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def registry() -> PreviewRegistry:
    return PreviewRegistry()


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(
        app_name="lens-lyric-test",
        gemini=GeminiSettings(api_key="test-key", model="gemini-2.5-flash", thinking_budget=2048),
        media=MediaLimitSettings(max_size_mb=20),
    )


@pytest.fixture()
def jpeg_file(tmp_path: Path) -> Path:
    path = tmp_path / "dawn.jpg"
    # 2 MiB plus the JPEG magic
    path.write_bytes(b"\xff\xd8\xff\xe0" + bytes(range(256)) * 8192)
    return path


@pytest.fixture()
def mp4_file(tmp_path: Path) -> Path:
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"\x01" * 4096)
    return path
