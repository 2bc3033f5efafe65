"""In-process table of preview locators, the counterpart of a browser's object-URL table."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Dict, Tuple

logger = logging.getLogger(__name__)

URL_PREFIX = "blob:lens-lyric/"


class PreviewRegistry:
    def __init__(self) -> None:
        self._entries: Dict[str, Tuple[bytes, str]] = {}
        self._lock = threading.Lock()

    def create(self, data: bytes, mime_type: str) -> "PreviewHandle":
        url = f"{URL_PREFIX}{uuid.uuid4()}"
        with self._lock:
            self._entries[url] = (data, mime_type)
        logger.debug("Preview created: %s (%s, %d bytes)", url, mime_type, len(data))
        return PreviewHandle(url=url, mime_type=mime_type, registry=self)

    def resolve(self, url: str) -> bytes:
        with self._lock:
            if url not in self._entries:
                raise KeyError(f"Unknown or revoked preview: {url}")
            return self._entries[url][0]

    def revoke(self, url: str) -> bool:
        with self._lock:
            removed = self._entries.pop(url, None)
        if removed is None:
            logger.warning("Preview %s was already revoked", url)
            return False
        logger.debug("Preview revoked: %s", url)
        return True

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


@dataclass(eq=False)
class PreviewHandle:
    """Owning reference to one registered preview; released exactly once."""

    url: str
    mime_type: str
    registry: PreviewRegistry = field(repr=False)
    _released: bool = field(default=False, repr=False)

    @property
    def released(self) -> bool:
        return self._released

    def read(self) -> bytes:
        return self.registry.resolve(self.url)

    def release(self) -> bool:
        if self._released:
            return False
        self._released = True
        return self.registry.revoke(self.url)

    def __enter__(self) -> "PreviewHandle":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


default_registry = PreviewRegistry()
