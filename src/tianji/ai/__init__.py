"""AI module for TIANJI - Gemini integration for readings, speech and images."""

from tianji.ai.client import GeminiClient, GeminiConfig, get_gemini_client
from tianji.ai.oracle import DestinyService
from tianji.ai.retry import retry_with_backoff
from tianji.ai.seed import generate_seed

__all__ = [
    # Client
    "GeminiClient",
    "GeminiConfig",
    "get_gemini_client",
    # Readings
    "DestinyService",
    # Primitives
    "retry_with_backoff",
    "generate_seed",
]
