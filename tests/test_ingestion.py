"""Validation, encoding and preview allocation for selected media."""

from __future__ import annotations

import asyncio
import base64
import io

import pytest

from lens_lyric.config import MediaLimitSettings
from lens_lyric.errors import ValidationError, ValidationKind
from lens_lyric.ingestion import decode_payload, ingest_media, load_media, media_kind_for
from lens_lyric.preview import default_registry
from lens_lyric.schemas import MediaKind

MIB = 1024 * 1024


def test_load_image_file_builds_descriptor(jpeg_file, registry):
    media = load_media(jpeg_file, registry=registry)

    assert media.kind is MediaKind.image
    assert media.mime_type == "image/jpeg"
    assert media.size == jpeg_file.stat().st_size
    assert media.source == str(jpeg_file)
    assert media.preview_url in registry
    assert media.preview.read() == jpeg_file.read_bytes()
    assert len(registry) == 1


def test_load_video_file_is_video_kind(mp4_file, registry):
    media = load_media(mp4_file, registry=registry)

    assert media.kind is MediaKind.video
    assert media.mime_type == "video/mp4"


@pytest.mark.parametrize(
    "mime_type, expected",
    [
        ("image/png", MediaKind.image),
        ("image/webp", MediaKind.image),
        ("VIDEO/WEBM", MediaKind.video),
        ("video/quicktime", MediaKind.video),
        ("application/pdf", None),
        ("audio/mpeg", None),
        ("", None),
    ],
)
def test_media_kind_follows_mime_prefix(mime_type, expected):
    assert media_kind_for(mime_type) is expected


def test_payload_round_trips_to_original_bytes(jpeg_file, registry):
    media = load_media(jpeg_file, registry=registry)

    assert decode_payload(media) == jpeg_file.read_bytes()
    assert "," not in media.base64
    assert base64.b64decode(media.base64) == jpeg_file.read_bytes()


def test_oversized_bytes_rejected_without_preview(registry):
    data = b"\0" * (20 * MIB + 1)

    with pytest.raises(ValidationError) as exc:
        load_media(data, "image/png", registry=registry)

    assert exc.value.kind is ValidationKind.TOO_LARGE
    assert exc.value.code == "ERR_MEDIA_TOO_LARGE"
    assert len(registry) == 0


def test_exactly_at_ceiling_is_accepted(registry):
    media = load_media(b"\1" * (20 * MIB), "image/png", registry=registry)
    assert media.size == 20 * MIB


def test_oversized_video_path_rejected_before_reading(tmp_path, registry):
    big = tmp_path / "holiday.mp4"
    with big.open("wb") as fh:
        fh.truncate(25 * MIB)

    with pytest.raises(ValidationError) as exc:
        load_media(big, registry=registry)

    assert exc.value.kind is ValidationKind.TOO_LARGE
    assert len(registry) == 0


def test_size_is_checked_before_type(registry):
    with pytest.raises(ValidationError) as exc:
        load_media(b"\0" * (20 * MIB + 1), "application/zip", registry=registry)
    assert exc.value.kind is ValidationKind.TOO_LARGE


@pytest.mark.parametrize("mime_type", ["application/pdf", "text/plain", "audio/wav"])
def test_unsupported_mime_rejected(mime_type, registry):
    with pytest.raises(ValidationError) as exc:
        load_media(b"payload", mime_type, registry=registry)

    assert exc.value.kind is ValidationKind.UNSUPPORTED_TYPE
    assert len(registry) == 0


def test_unknown_extension_without_mime_is_unsupported(tmp_path, registry):
    path = tmp_path / "notes.lensunknown"
    path.write_bytes(b"hello")

    with pytest.raises(ValidationError) as exc:
        load_media(path, registry=registry)
    assert exc.value.kind is ValidationKind.UNSUPPORTED_TYPE


def test_empty_file_reports_read_failure(tmp_path, registry):
    path = tmp_path / "empty.png"
    path.write_bytes(b"")

    with pytest.raises(ValidationError) as exc:
        load_media(path, registry=registry)
    assert exc.value.kind is ValidationKind.READ_FAILED
    assert len(registry) == 0


def test_missing_file_reports_read_failure(tmp_path, registry):
    with pytest.raises(ValidationError) as exc:
        load_media(tmp_path / "gone.jpg", registry=registry)

    assert exc.value.kind is ValidationKind.READ_FAILED
    assert isinstance(exc.value.__cause__, OSError)


def test_stream_source_uses_explicit_mime_and_limit(registry):
    limits = MediaLimitSettings(max_size_mb=1)
    stream = io.BytesIO(b"x" * (MIB + 10))

    with pytest.raises(ValidationError) as exc:
        load_media(stream, "video/mp4", registry=registry, limits=limits)
    assert exc.value.kind is ValidationKind.TOO_LARGE


def test_text_stream_reports_read_failure(registry):
    with pytest.raises(ValidationError) as exc:
        load_media(io.StringIO("not bytes"), "image/png", registry=registry)
    assert exc.value.kind is ValidationKind.READ_FAILED


def test_ingest_media_runs_read_off_loop(jpeg_file, registry):
    media = asyncio.run(ingest_media(jpeg_file, "image/jpeg", registry=registry))

    assert media.kind is MediaKind.image
    assert decode_payload(media) == jpeg_file.read_bytes()


def test_empty_injected_registry_owns_the_preview(registry):
    before = len(default_registry)

    media = load_media(b"\xff\xd8\xff", "image/jpeg", registry=registry)

    assert media.preview_url in registry
    assert len(default_registry) == before
    media.preview.release()
