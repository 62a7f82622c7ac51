"""Gemini API client for TIANJI.

Single-shot transport over the google-genai SDK (structured readings and
speech) and the Gemini REST endpoint (image synthesis). Retries are applied
by the caller through ``tianji.ai.retry``.
"""

import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp
from google import genai
from google.genai import types

from tianji.config.settings import AISettings, get_settings
from tianji.errors import GeminiAPIError, MissingAPIKeyError

logger = logging.getLogger(__name__)

REST_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"


@dataclass
class GeminiConfig:
    """Configuration for Gemini client."""

    api_key: str
    reading_model: str = "gemini-3-pro-preview"
    speech_model: str = "gemini-2.5-flash-preview-tts"
    image_model: str = "gemini-2.5-flash-image"
    voice_name: str = "Puck"
    timeout: float = 300.0  # 5 minute timeout

    @classmethod
    def from_settings(cls, settings: AISettings) -> "GeminiConfig":
        return cls(
            api_key=settings.gemini_api_key,
            reading_model=settings.reading_model,
            speech_model=settings.speech_model,
            image_model=settings.image_model,
            voice_name=settings.voice_name,
            timeout=settings.timeout,
        )


@dataclass
class InlineImage:
    """Base64 image payload found in a response part."""

    mime_type: str
    data: str

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.data)


def extract_inline_image(payload: Dict[str, Any]) -> Optional[InlineImage]:
    """Return the first inline image of the first candidate, if any."""
    candidates = payload.get("candidates") or []
    if not candidates:
        return None
    parts = (candidates[0].get("content") or {}).get("parts") or []
    for part in parts:
        inline_data = part.get("inlineData") or part.get("inline_data")
        if inline_data and inline_data.get("data"):
            mime_type = inline_data.get("mimeType") or inline_data.get("mime_type") or "image/png"
            return InlineImage(mime_type=mime_type, data=inline_data["data"])
    return None


def extract_inline_audio(response: Any) -> Optional[bytes]:
    """Return the first content part's inline data from an SDK response."""
    try:
        part = response.candidates[0].content.parts[0]
    except (AttributeError, IndexError, TypeError):
        return None
    inline_data = getattr(part, "inline_data", None)
    if inline_data is None or not inline_data.data:
        return None
    data = inline_data.data
    # The SDK decodes base64 payloads; raw REST-shaped strings are decoded here
    if isinstance(data, str):
        return base64.b64decode(data)
    return data


class GeminiClient:
    """Async interface to Gemini models for:
    - Structured JSON readings
    - Speech synthesis (TTS)
    - Image generation
    """

    def __init__(self, config: Optional[GeminiConfig] = None):
        if config is None:
            settings = get_settings().ai
            if not settings.gemini_api_key:
                logger.warning("GEMINI_API_KEY not set, readings will be unavailable")
            config = GeminiConfig.from_settings(settings)

        self.config = config
        self._client = None

        logger.info("GeminiClient initialized")

    @property
    def is_available(self) -> bool:
        """Check if AI features are available."""
        return bool(self.config.api_key)

    def _ensure_client(self):
        """Get the SDK client, creating it on first use."""
        if self._client is not None:
            return self._client

        if not self.config.api_key:
            logger.error("Cannot initialize client: no API key")
            raise MissingAPIKeyError()

        self._client = genai.Client(api_key=self.config.api_key)
        logger.info("Gemini API client connected")
        return self._client

    async def generate_content(self, model: str, contents: Any, config: types.GenerateContentConfig) -> Any:
        """Run one blocking SDK call in a worker thread, bounded by the timeout."""
        client = self._ensure_client()
        return await asyncio.wait_for(
            asyncio.to_thread(
                client.models.generate_content,
                model=model,
                contents=contents,
                config=config,
            ),
            timeout=self.config.timeout,
        )

    async def generate_json(
        self,
        prompt: str,
        system_instruction: str,
        response_schema: Dict[str, Any],
        seed: Optional[int] = None,
    ) -> str:
        """Generate a JSON document constrained by ``response_schema``.

        Args:
            prompt: The user prompt
            system_instruction: Output rules for the model
            response_schema: OpenAPI-style schema dict
            seed: Sampling seed for reproducible output

        Returns:
            Raw response text, empty when the model returned none
        """
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            response_mime_type="application/json",
            response_schema=response_schema,
            seed=seed,
        )
        response = await self.generate_content(self.config.reading_model, prompt, config)
        text = getattr(response, "text", None) or ""
        logger.debug(f"Reading response: {len(text)} chars (seed={seed})")
        return text

    async def generate_speech(self, text: str, voice_name: Optional[str] = None) -> Optional[bytes]:
        """Synthesize speech for ``text``.

        Returns:
            Raw PCM16 mono bytes, or None when the response carried no audio
        """
        voice = voice_name or self.config.voice_name
        config = types.GenerateContentConfig(
            response_modalities=["AUDIO"],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice),
                ),
            ),
        )
        response = await self.generate_content(self.config.speech_model, text, config)
        audio = extract_inline_audio(response)
        if audio:
            logger.debug(f"Speech response: {len(audio)} bytes (voice={voice})")
        return audio

    async def _post_json(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST a JSON payload to the REST API and return the decoded body."""
        async with aiohttp.ClientSession() as session:
            async with session.post(
                endpoint,
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "x-goog-api-key": self.config.api_key,
                },
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
            ) as response:
                if not response.ok:
                    error_text = await response.text()
                    logger.error(f"API error {response.status}: {error_text[:200]}")
                    raise GeminiAPIError(response.status, error_text)
                return await response.json()

    async def generate_image(self, prompt: str, aspect_ratio: str = "1:1") -> Optional[InlineImage]:
        """Generate an image through the REST endpoint.

        Args:
            prompt: Description of the image to generate
            aspect_ratio: Image aspect ratio (1:1, 9:16, 16:9, etc.)

        Returns:
            First inline image of the response, or None if there is none
        """
        if not self.config.api_key:
            logger.error("Cannot generate image: no API key")
            raise MissingAPIKeyError()

        payload = {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": prompt}],
                }
            ],
            "generationConfig": {
                "responseModalities": ["TEXT", "IMAGE"],
                "imageConfig": {"aspectRatio": aspect_ratio},
            },
        }
        endpoint = f"{REST_BASE_URL}/{self.config.image_model}:generateContent"

        data = await self._post_json(endpoint, payload)
        image = extract_inline_image(data)
        if image is None:
            logger.warning("No image in response")
            return None

        logger.debug(f"Image response: {image.mime_type}, {len(image.data)} base64 chars")
        return image


# Module-level singleton accessor
_client: Optional[GeminiClient] = None


def get_gemini_client(config: Optional[GeminiConfig] = None) -> GeminiClient:
    """Get the shared Gemini client instance.

    Args:
        config: Optional configuration (only used on first call)
    """
    global _client
    if _client is None:
        _client = GeminiClient(config)
    return _client
