"""Error types raised by the generation layer.

Every error carries a short ``code`` and an optional ``detail`` dict so the
session layer can log it in a structured way while showing only the message.
"""

from typing import Any, Dict, Optional


# User-facing messages
BUSY_MESSAGE = "天机阁今日访客过多（API 额度受限），请稍候片刻再来祈请。"
SPEECH_FAILED_MESSAGE = "语音合成失败"


class TianjiError(Exception):
    """Base class for all TIANJI errors."""

    code = "tianji_error"
    retryable = True

    def __init__(self, message: str, *, code: Optional[str] = None, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code or self.code
        self.detail = detail or {}


class ServiceBusyError(TianjiError):
    """The model provider rejected the call for quota reasons."""

    code = "service_busy"
    retryable = False

    def __init__(self, message: str = BUSY_MESSAGE, **kwargs: Any):
        super().__init__(message, **kwargs)


class MissingAPIKeyError(TianjiError):
    """No Gemini credential is configured."""

    code = "missing_api_key"
    retryable = False

    def __init__(self, message: str = "GEMINI_API_KEY 未配置，无法沟通天机。", **kwargs: Any):
        super().__init__(message, **kwargs)


class GeminiAPIError(TianjiError):
    """Non-OK response from the Gemini REST endpoint."""

    code = "gemini_api_error"

    def __init__(self, status: int, body: str = ""):
        super().__init__(f"Gemini API error {status}: {body[:200]}", detail={"status": status})
        self.status = status


class SpeechSynthesisError(TianjiError):
    """Speech response did not contain audio data."""

    code = "speech_failed"

    def __init__(self, message: str = SPEECH_FAILED_MESSAGE, **kwargs: Any):
        super().__init__(message, **kwargs)


class ReadingParseError(TianjiError):
    """Reading response text was not valid JSON."""

    code = "reading_parse_error"


class ReadingValidationError(TianjiError):
    """Reading JSON broke the requested output contract."""

    code = "reading_validation_error"
