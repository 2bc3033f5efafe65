"""Error code registry and the exception taxonomy raised by ingestion and the caption client."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Type


class ValidationKind(str, Enum):
    TOO_LARGE = "too_large"
    UNSUPPORTED_TYPE = "unsupported_type"
    READ_FAILED = "read_failed"


class ServiceKind(str, Enum):
    MISSING_CREDENTIAL = "missing_credential"
    EMPTY_RESPONSE = "empty_response"
    MALFORMED_RESPONSE = "malformed_response"
    REQUEST_FAILED = "request_failed"


class CaptionError(Exception):
    """Base class for every failure surfaced to the session."""

    def __init__(self, spec: "ErrorCodeSpec", message: Optional[str] = None) -> None:
        self.spec = spec
        self.message = message or spec.en
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return self.spec.code

    @property
    def status(self) -> int:
        return self.spec.status

    @property
    def zh_message(self) -> str:
        return self.spec.zh

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "failure",
            "error_code": self.code,
            "error_status": self.status,
            "message": self.message,
            "zh_message": self.zh_message,
        }


class ValidationError(CaptionError):
    """Raised by media ingestion; the selection is refused."""

    @property
    def kind(self) -> ValidationKind:
        return ValidationKind(self.spec.kind)


class ServiceError(CaptionError):
    """Raised by the caption client; the underlying cause is chained as ``__cause__``."""

    @property
    def kind(self) -> ServiceKind:
        return ServiceKind(self.spec.kind)


@dataclass(frozen=True)
class ErrorCodeSpec:
    code: str
    zh: str
    en: str
    status: int
    kind: str
    error_class: Type[CaptionError]


class ErrorRegistry:
    def __init__(self) -> None:
        self._codes: Dict[str, ErrorCodeSpec] = {}

    def register(self, spec: ErrorCodeSpec) -> None:
        if spec.code in self._codes:
            raise ValueError(f"Error code {spec.code} already registered")
        self._codes[spec.code] = spec

    def get(self, code: str) -> ErrorCodeSpec:
        if code not in self._codes:
            raise KeyError(f"Unknown error code: {code}")
        return self._codes[code]

    def to_dict(self) -> Dict[str, ErrorCodeSpec]:
        return dict(self._codes)


ERRORS = ErrorRegistry()


def register_default_errors() -> None:
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_MEDIA_TOO_LARGE",
            zh="文件大小超出限制",
            en="File size too large",
            status=4201,
            kind=ValidationKind.TOO_LARGE.value,
            error_class=ValidationError,
        )
    )
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_MEDIA_UNSUPPORTED",
            zh="请上传有效的图片或视频文件",
            en="Please upload a valid image or video file",
            status=4203,
            kind=ValidationKind.UNSUPPORTED_TYPE.value,
            error_class=ValidationError,
        )
    )
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_MEDIA_READ_FAILED",
            zh="文件读取失败",
            en="Failed to read the selected file",
            status=4204,
            kind=ValidationKind.READ_FAILED.value,
            error_class=ValidationError,
        )
    )
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_CREDENTIAL_MISSING",
            zh="缺少 API 密钥",
            en="API key is missing from environment variables",
            status=4010,
            kind=ServiceKind.MISSING_CREDENTIAL.value,
            error_class=ServiceError,
        )
    )
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_EMPTY_RESPONSE",
            zh="模型未返回任何内容",
            en="No response text received from the model",
            status=5021,
            kind=ServiceKind.EMPTY_RESPONSE.value,
            error_class=ServiceError,
        )
    )
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_MALFORMED_RESPONSE",
            zh="模型返回内容不符合预期格式",
            en="Model response does not match the caption schema",
            status=5022,
            kind=ServiceKind.MALFORMED_RESPONSE.value,
            error_class=ServiceError,
        )
    )
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_REQUEST_FAILED",
            zh="调用模型服务失败",
            en="Caption service request failed",
            status=5023,
            kind=ServiceKind.REQUEST_FAILED.value,
            error_class=ServiceError,
        )
    )


register_default_errors()


def raise_error(code: str, *, detail: Optional[str] = None, cause: Optional[BaseException] = None) -> None:
    spec = ERRORS.get(code)
    raise spec.error_class(spec, detail) from cause
