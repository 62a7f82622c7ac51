"""
TIANJI - composition root.

Wires settings, the Gemini client, the destiny service and the presentation
components into a ReadingSession.
"""

import logging
from typing import Optional

from dotenv import load_dotenv

from tianji.ai.client import GeminiClient, GeminiConfig
from tianji.ai.oracle import DestinyService
from tianji.audio.player import SpeechPlayer
from tianji.config.settings import Settings, get_settings
from tianji.session import ReadingSession

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S"
    )


def build_session(settings: Optional[Settings] = None) -> ReadingSession:
    """Create a ready-to-use session from settings."""
    settings = settings or get_settings()

    client = GeminiClient(config=GeminiConfig.from_settings(settings.ai))
    if not client.is_available:
        logger.warning("GEMINI_API_KEY not set, readings will fail until it is configured")

    service = DestinyService(
        client=client,
        retries=settings.ai.max_retries,
        retry_delay=settings.ai.retry_delay,
        strict_validation=settings.ai.strict_validation,
    )
    player = SpeechPlayer(
        mixer_frequency=settings.audio.mixer_frequency,
        channels=settings.audio.channels,
    )
    return ReadingSession(service=service, player=player, export_settings=settings.export)


def bootstrap() -> ReadingSession:
    """Load the environment, configure logging and build a session."""
    load_dotenv()
    settings = get_settings()
    setup_logging(settings.debug)
    logger.info("TIANJI starting...")
    return build_session(settings)
