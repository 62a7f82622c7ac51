"""Destiny readings using Gemini.

Generates the two structured readings (daily fortune and compatibility),
the spoken version of a reading and the ink-painting illustration that goes
with it. Every operation runs through the fixed-delay retry wrapper.
"""

import asyncio
import base64
import logging
from typing import Awaitable, Callable, Optional

from tianji.ai.client import GeminiClient, get_gemini_client
from tianji.ai.retry import retry_with_backoff
from tianji.ai.seed import compatibility_seed, fortune_seed
from tianji.config.settings import get_settings
from tianji.core.models import CompatibilityResult, FortuneResult, UserInfo, parse_reading
from tianji.errors import SpeechSynthesisError

logger = logging.getLogger(__name__)


MASTER_PERSONA = "你是一位精通周易与八字的命理大师。"

FORTUNE_SYSTEM_INSTRUCTION = """必须严格遵守以下规则：
1. "todo"(宜)和"notodo"(忌)必须是互斥的，不能在宜里出现忌的内容。
2. "todo"和"notodo"各返回3个短语，每个短语严格限制在4-8个汉字之间，不准超长。
3. "score"必须是1-100之间的整数。
4. "insight"是详细的文字解析，要求古风且富有哲理，字数300字左右。
5. "imagePrompt"用一句英文描述契合本日运势意境的画面。"""

COMPATIBILITY_SYSTEM_INSTRUCTION = """必须严格遵守：
1. "todo"和"notodo"为两人共同生活的建议，各3条，每条4-8字，严禁重复或逻辑冲突。
2. "score"为1-100的整数。
3. "matchAnalysis"提供300字左右的深度文字解析。
4. "imagePrompt"用一句英文描述象征两人缘分的画面。"""

SPEECH_PROMPT = "请用一位老练、慈祥、语速稍慢的命理大师语气，富有感情地朗读这段批注：{text}"

IMAGE_PROMPT = (
    "A high-quality traditional Chinese ink painting, minimalist, elegant, "
    "representing the concept of: {concept}. Golden light, silk texture, zen atmosphere."
)

FORTUNE_IMAGE_FALLBACK = "Destiny landscape"
COMPATIBILITY_IMAGE_FALLBACK = "Union of two souls"

_STRING = {"type": "STRING"}
_STRING_LIST = {"type": "ARRAY", "items": {"type": "STRING"}}

FORTUNE_SCHEMA = {
    "type": "OBJECT",
    "required": ["bazi", "summary", "score", "todo", "notodo", "insight", "imagePrompt"],
    "properties": {
        "bazi": {"type": "STRING", "description": "干支八字"},
        "summary": {"type": "STRING", "description": "四字断语"},
        "score": {"type": "INTEGER"},
        "fiveElements": _STRING,
        "luckyColor": _STRING,
        "luckyDirection": _STRING,
        "todo": _STRING_LIST,
        "notodo": _STRING_LIST,
        "insight": _STRING,
        "imagePrompt": _STRING,
    },
}

COMPATIBILITY_SCHEMA = {
    "type": "OBJECT",
    "required": ["score", "matchAnalysis", "todo", "notodo", "dynamic"],
    "properties": {
        "score": {"type": "INTEGER"},
        "baziA": _STRING,
        "baziB": _STRING,
        "matchAnalysis": _STRING,
        "fiveElementMatch": _STRING,
        "advice": _STRING,
        "dynamic": _STRING,
        "todo": _STRING_LIST,
        "notodo": _STRING_LIST,
        "imagePrompt": _STRING,
    },
}


class DestinyService:
    """Service for generating AI-powered destiny readings."""

    def __init__(
        self,
        client: Optional[GeminiClient] = None,
        retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        strict_validation: Optional[bool] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        settings = get_settings().ai
        self._client = client or get_gemini_client()
        self._retries = settings.max_retries if retries is None else retries
        self._retry_delay = settings.retry_delay if retry_delay is None else retry_delay
        self._strict = settings.strict_validation if strict_validation is None else strict_validation
        self._sleep = sleep

    @property
    def is_available(self) -> bool:
        """Check if the reading service is available."""
        return self._client.is_available

    async def _with_retry(self, operation):
        return await retry_with_backoff(
            operation,
            retries=self._retries,
            delay=self._retry_delay,
            sleep=self._sleep,
        )

    async def _optional_image(self, concept: str) -> Optional[str]:
        """Illustrate a reading; any failure means no image."""
        try:
            return await self.generate_destiny_image(concept)
        except Exception as e:
            logger.warning(f"Destiny image skipped: {e}")
            return None

    async def get_daily_fortune(self, info: UserInfo, target_date: str) -> FortuneResult:
        """Generate the daily fortune of one person.

        Args:
            info: The person's birth information
            target_date: Day to read, YYYY-MM-DD

        Returns:
            FortuneResult, with image_url set when illustration succeeded
        """
        seed = fortune_seed(info.name, info.birth_date, target_date)
        prompt = f"{MASTER_PERSONA}分析{info.describe()}在{target_date}的运势。"

        async def attempt() -> FortuneResult:
            text = await self._client.generate_json(
                prompt=prompt,
                system_instruction=FORTUNE_SYSTEM_INSTRUCTION,
                response_schema=FORTUNE_SCHEMA,
                seed=seed,
            )
            result = parse_reading(FortuneResult, text, strict=self._strict)
            image_url = await self._optional_image(result.image_prompt or FORTUNE_IMAGE_FALLBACK)
            return result.with_image(image_url)

        logger.info(f"Reading daily fortune for {target_date} (seed={seed})")
        return await self._with_retry(attempt)

    async def get_compatibility(self, person_a: UserInfo, person_b: UserInfo) -> CompatibilityResult:
        """Generate the compatibility reading of two people."""
        seed = compatibility_seed(person_a.name, person_b.name)
        prompt = f"{MASTER_PERSONA}分析{person_a.describe()}与{person_b.describe()}的合婚缘分。"

        async def attempt() -> CompatibilityResult:
            text = await self._client.generate_json(
                prompt=prompt,
                system_instruction=COMPATIBILITY_SYSTEM_INSTRUCTION,
                response_schema=COMPATIBILITY_SCHEMA,
                seed=seed,
            )
            result = parse_reading(CompatibilityResult, text, strict=self._strict)
            image_url = await self._optional_image(result.image_prompt or COMPATIBILITY_IMAGE_FALLBACK)
            return result.with_image(image_url)

        logger.info(f"Reading compatibility (seed={seed})")
        return await self._with_retry(attempt)

    async def speak_prophecy(self, text: str) -> str:
        """Synthesize a reading in the master's voice.

        Returns:
            Base64-encoded PCM16 mono audio at 24kHz

        Raises:
            SpeechSynthesisError: The response carried no audio
        """
        async def attempt() -> str:
            audio = await self._client.generate_speech(SPEECH_PROMPT.format(text=text))
            if not audio:
                raise SpeechSynthesisError()
            return base64.b64encode(audio).decode("ascii")

        return await self._with_retry(attempt)

    async def generate_destiny_image(self, concept: str) -> Optional[str]:
        """Paint ``concept`` as an ink painting.

        Returns:
            A data URL of the first image in the response, or None
        """
        async def attempt() -> Optional[str]:
            image = await self._client.generate_image(IMAGE_PROMPT.format(concept=concept), aspect_ratio="1:1")
            return image.data_url if image else None

        return await self._with_retry(attempt)
