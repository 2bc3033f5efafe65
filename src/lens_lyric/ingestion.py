"""Media ingestion: validate a selected file and turn it into a transport-ready descriptor."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Optional, Union

from .config import MediaLimitSettings, get_settings
from .errors import raise_error
from .preview import PreviewHandle, PreviewRegistry, default_registry
from .schemas import MediaKind

logger = logging.getLogger(__name__)

MediaSource = Union[str, Path, bytes, BinaryIO]


@dataclass(frozen=True)
class MediaDescriptor:
    source: str
    preview: PreviewHandle = field(repr=False)
    kind: MediaKind
    base64: str = field(repr=False)
    mime_type: str
    size: int

    @property
    def preview_url(self) -> str:
        return self.preview.url


def media_kind_for(mime_type: str) -> Optional[MediaKind]:
    """Map a MIME type onto a media kind by prefix only."""
    mime = (mime_type or "").strip().lower()
    if mime.startswith("image/"):
        return MediaKind.image
    if mime.startswith("video/"):
        return MediaKind.video
    return None


def _source_name(source: MediaSource) -> str:
    if isinstance(source, (str, Path)):
        return str(source)
    if isinstance(source, (bytes, bytearray)):
        return "<bytes>"
    return str(getattr(source, "name", "") or "<stream>")


def _resolve_mime(source: MediaSource, mime_type: Optional[str]) -> str:
    if mime_type:
        return mime_type.strip().lower()
    guessed, _ = mimetypes.guess_type(_source_name(source))
    return (guessed or "").lower()


def _declared_size(source: MediaSource) -> Optional[int]:
    if isinstance(source, (bytes, bytearray)):
        return len(source)
    if isinstance(source, (str, Path)):
        try:
            return Path(source).stat().st_size
        except OSError as exc:
            raise_error("ERR_MEDIA_READ_FAILED", detail=f"cannot access {source}: {exc}", cause=exc)
    return None


def _read_all(source: MediaSource, limit: int) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    try:
        if isinstance(source, (str, Path)):
            return Path(source).read_bytes()
        # Read one byte past the ceiling so oversize streams are detected without loading them whole.
        data = source.read(limit + 1)
    except OSError as exc:
        raise_error("ERR_MEDIA_READ_FAILED", detail=f"cannot read {_source_name(source)}: {exc}", cause=exc)
    if not isinstance(data, (bytes, bytearray)):
        raise_error("ERR_MEDIA_READ_FAILED", detail="stream must be opened in binary mode")
    return bytes(data)


def _check_size(size: int, limits: MediaLimitSettings) -> None:
    if size > limits.max_size_bytes:
        raise_error(
            "ERR_MEDIA_TOO_LARGE",
            detail=f"File size too large ({size} bytes). Please upload files under {limits.max_size_mb}MB.",
        )


def _check_type(mime_type: str, limits: MediaLimitSettings) -> MediaKind:
    kind = media_kind_for(mime_type)
    if kind is None or not mime_type.startswith(tuple(limits.accepted_prefixes)):
        raise_error(
            "ERR_MEDIA_UNSUPPORTED",
            detail=f"Please upload a valid image or video file (got {mime_type or 'unknown type'}).",
        )
    return kind


def load_media(
    source: MediaSource,
    mime_type: Optional[str] = None,
    *,
    registry: Optional[PreviewRegistry] = None,
    limits: Optional[MediaLimitSettings] = None,
) -> MediaDescriptor:
    """Validate and encode one media file.

    Size is checked before type, and an empty file is reported as a failed
    read. Nothing is allocated unless every check passes.
    """
    limits = limits if limits is not None else get_settings().media
    registry = registry if registry is not None else default_registry
    name = _source_name(source)
    mime = _resolve_mime(source, mime_type)

    declared = _declared_size(source)
    if declared is not None:
        _check_size(declared, limits)
    kind = _check_type(mime, limits)

    data = _read_all(source, limits.max_size_bytes)
    _check_size(len(data), limits)
    if not data:
        raise_error("ERR_MEDIA_READ_FAILED", detail=f"{name} is empty")

    payload = base64.b64encode(data).decode("ascii")
    preview = registry.create(data, mime)
    logger.info("Media accepted: %s kind=%s mime=%s size=%d", name, kind.value, mime, len(data))
    return MediaDescriptor(
        source=name,
        preview=preview,
        kind=kind,
        base64=payload,
        mime_type=mime,
        size=len(data),
    )


async def ingest_media(
    source: MediaSource,
    mime_type: Optional[str] = None,
    *,
    registry: Optional[PreviewRegistry] = None,
    limits: Optional[MediaLimitSettings] = None,
) -> MediaDescriptor:
    """Async wrapper around :func:`load_media`; the read happens off the event loop."""
    return await asyncio.to_thread(load_media, source, mime_type, registry=registry, limits=limits)


def decode_payload(descriptor: MediaDescriptor) -> bytes:
    try:
        return base64.b64decode(descriptor.base64, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64 payload for {descriptor.source}: {exc}") from exc
