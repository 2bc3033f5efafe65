"""Contextual bilingual captioning for images and videos via Google Gemini."""

from .client import CaptionClient, GeminiCaptionClient, GeminiConfig, get_caption_client
from .errors import CaptionError, ServiceError, ServiceKind, ValidationError, ValidationKind
from .ingestion import MediaDescriptor, decode_payload, ingest_media, load_media
from .preview import PreviewHandle, PreviewRegistry
from .schemas import AppState, CaptionResult, MediaKind
from .session import Analyzing, CaptionSession, Error, Idle, SessionState, Success, create_session

__all__ = [
	"AppState",
	"Analyzing",
	"CaptionClient",
	"CaptionError",
	"CaptionResult",
	"CaptionSession",
	"Error",
	"GeminiCaptionClient",
	"GeminiConfig",
	"Idle",
	"MediaDescriptor",
	"MediaKind",
	"PreviewHandle",
	"PreviewRegistry",
	"ServiceError",
	"ServiceKind",
	"SessionState",
	"Success",
	"ValidationError",
	"ValidationKind",
	"decode_payload",
	"get_caption_client",
	"ingest_media",
	"create_session",
	"load_media",
]
