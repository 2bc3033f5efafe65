"""Caption session state machine.

The session owns the active media descriptor, its preview handle and the
latest result or error. Rendering layers observe it through :meth:`subscribe`
and drive it with :meth:`select`, :meth:`generate`, :meth:`retry` and
:meth:`reset`.

    Idle(None) --select--> Idle(media) --generate--> Analyzing
    Analyzing --ok--> Success        Analyzing --fail--> Error --retry--> Analyzing
    any --select--> Idle(media)      any --reset--> Idle(None)

``select`` and ``reset`` supersede an in-flight call: its outcome is dropped
when it arrives.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

import structlog

from .client import CaptionClient, get_caption_client
from .config import Settings, get_settings
from .errors import CaptionError
from .ingestion import MediaDescriptor, MediaSource, ingest_media
from .logging import configure_logging
from .preview import PreviewRegistry, default_registry
from .schemas import AppState, CaptionResult

logger = logging.getLogger(__name__)
events = structlog.get_logger("lens_lyric.session")

GENERIC_ERROR_MESSAGE = "Failed to generate captions. Please try again or check your file."


@dataclass(frozen=True)
class Idle:
    media: Optional[MediaDescriptor] = None
    kind = AppState.IDLE


@dataclass(frozen=True)
class Analyzing:
    media: MediaDescriptor
    kind = AppState.ANALYZING


@dataclass(frozen=True)
class Success:
    media: MediaDescriptor
    result: CaptionResult
    kind = AppState.SUCCESS


@dataclass(frozen=True)
class Error:
    media: MediaDescriptor
    message: str
    cause: Optional[BaseException] = None
    kind = AppState.ERROR


SessionState = Union[Idle, Analyzing, Success, Error]
Observer = Callable[[SessionState], None]


class CaptionSession:
    def __init__(
        self,
        client: Optional[CaptionClient] = None,
        *,
        registry: Optional[PreviewRegistry] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._client = client
        self._registry = registry if registry is not None else default_registry
        self._settings = settings if settings is not None else get_settings()
        self._state: SessionState = Idle()
        self._observers: List[Observer] = []
        # Bumped whenever the descriptor is replaced or dropped; stale calls compare against it.
        self._token = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def app_state(self) -> AppState:
        return self._state.kind

    @property
    def media(self) -> Optional[MediaDescriptor]:
        return self._state.media

    @property
    def result(self) -> Optional[CaptionResult]:
        return self._state.result if isinstance(self._state, Success) else None

    @property
    def error(self) -> Optional[str]:
        return self._state.message if isinstance(self._state, Error) else None

    @property
    def client(self) -> CaptionClient:
        if self._client is None:
            self._client = get_caption_client()
        return self._client

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def _transition(self, new_state: SessionState) -> None:
        previous = self._state
        self._state = new_state
        events.info(
            "session.transition",
            source=previous.kind.value,
            target=new_state.kind.value,
            media=new_state.media.source if new_state.media else None,
        )
        for observer in list(self._observers):
            observer(new_state)

    def _discard_media(self) -> None:
        media = self._state.media
        self._token += 1
        if media is not None:
            media.preview.release()

    async def select(self, source: MediaSource, mime_type: Optional[str] = None) -> SessionState:
        """Validate and adopt new media. Raises ValidationError and keeps the current state on failure."""
        descriptor = await ingest_media(
            source, mime_type, registry=self._registry, limits=self._settings.media
        )
        self._discard_media()
        self._transition(Idle(media=descriptor))
        return self._state

    async def generate(self) -> SessionState:
        state = self._state
        if not isinstance(state, Idle) or state.media is None:
            logger.warning("generate ignored in state %s (media=%s)", state.kind.value, state.media is not None)
            return state
        return await self._run(state.media)

    async def retry(self) -> SessionState:
        state = self._state
        if not isinstance(state, Error):
            logger.warning("retry ignored in state %s", state.kind.value)
            return state
        return await self._run(state.media)

    async def _run(self, media: MediaDescriptor) -> SessionState:
        token = self._token
        self._transition(Analyzing(media=media))
        try:
            result = await self.client.generate_captions(media.base64, media.mime_type)
        except asyncio.CancelledError:
            if token == self._token:
                self._transition(Idle(media=media))
            raise
        except Exception as exc:  # noqa: BLE001
            if token != self._token:
                logger.info("Dropping failure of superseded request for %s", media.source)
                return self._state
            code = exc.code if isinstance(exc, CaptionError) else type(exc).__name__
            logger.error("Caption generation failed for %s [%s]", media.source, code, exc_info=exc)
            self._transition(Error(media=media, message=GENERIC_ERROR_MESSAGE, cause=exc))
            return self._state
        if token != self._token:
            logger.info("Dropping result of superseded request for %s", media.source)
            return self._state
        self._transition(Success(media=media, result=result))
        return self._state

    def reset(self) -> SessionState:
        self._discard_media()
        self._transition(Idle())
        return self._state

    def close(self) -> None:
        if isinstance(self._state, Idle) and self._state.media is None:
            return
        self._discard_media()
        self._transition(Idle())

    def __enter__(self) -> "CaptionSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def create_session(client: Optional[CaptionClient] = None, *, settings: Optional[Settings] = None) -> CaptionSession:
    """Configure logging from settings and return a session bound to the Gemini client by default."""
    settings = settings if settings is not None else get_settings()
    configure_logging(settings.logging)
    return CaptionSession(client, settings=settings)
