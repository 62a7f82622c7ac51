"""
Reading session: the front-end's user actions.

Glues the form state, the destiny service, the speech player and the card
exporter together. Every failure ends up as the single alert message;
nothing raised by the generation layer escapes a user action.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from tianji.ai.oracle import DestinyService
from tianji.audio.player import SpeechPlayer
from tianji.config.settings import ExportSettings, get_settings
from tianji.core.models import Tab
from tianji.core.state import AppState, Reading, Role, SessionState
from tianji.render.card import CardRenderer, export_card

logger = logging.getLogger(__name__)

INCOMPLETE_PRIMARY_MESSAGE = "请补全您的姓名与生辰。"
INCOMPLETE_PARTNER_MESSAGE = "请补全对方的姓名与生辰。"
READING_FAILED_MESSAGE = "起卦失败，请稍后再试。"
SPEECH_UNAVAILABLE_MESSAGE = "大师今日静修，无法言传。"


class ReadingSession:
    """One user's session in front of the oracle."""

    def __init__(
        self,
        service: DestinyService,
        player: Optional[SpeechPlayer] = None,
        renderer: Optional[CardRenderer] = None,
        state: Optional[SessionState] = None,
        export_settings: Optional[ExportSettings] = None,
    ):
        self.service = service
        self.player = player or SpeechPlayer()
        self.export_settings = export_settings or get_settings().export
        self.renderer = renderer or CardRenderer(
            scale=self.export_settings.scale,
            background=self.export_settings.background,
            font_path=self.export_settings.font_path,
        )
        self.state = state or SessionState()

    @property
    def current(self) -> AppState:
        return self.state.state

    # Form editing

    def switch_tab(self, tab: Tab) -> AppState:
        return self.state.switch_tab(tab)

    def update_user(self, role: Role, **fields: str) -> AppState:
        return self.state.update_user(role, **fields)

    def set_target_date(self, target_date: str) -> AppState:
        return self.state.set_target_date(target_date)

    def dismiss_alert(self) -> AppState:
        return self.state.dismiss_alert()

    def reset(self) -> AppState:
        """Discard the result and return to the form."""
        return self.state.reset()

    # Requests

    def _incomplete_form_message(self) -> Optional[str]:
        current = self.current
        if not current.primary.is_complete:
            return INCOMPLETE_PRIMARY_MESSAGE
        if current.active_tab == Tab.COMPATIBILITY and not current.partner.is_complete:
            return INCOMPLETE_PARTNER_MESSAGE
        return None

    async def submit(self) -> Optional[Reading]:
        """Request a reading for the active tab.

        Returns:
            The stored reading, or None when the request was refused or failed
        """
        message = self._incomplete_form_message()
        if message:
            self.state.alert(message)
            return None

        if not self.state.begin_submit():
            return None

        current = self.current
        tab = current.active_tab
        try:
            if tab == Tab.FORTUNE:
                data = await self.service.get_daily_fortune(current.primary, current.target_date)
            else:
                data = await self.service.get_compatibility(current.primary, current.partner)
        except Exception as e:
            logger.error(f"Reading failed ({tab.value}): {e}")
            self.state.fail_submit(str(e) or READING_FAILED_MESSAGE)
            return None

        reading = Reading(tab=tab, data=data)
        self.state.finish_submit(reading)
        logger.info(f"Reading complete ({tab.value}, score={data.score})")
        return reading

    async def speak(self) -> bool:
        """Have the master read the narrative aloud.

        Returns:
            True if playback started
        """
        if not self.state.begin_speak():
            return False

        text = self.current.result.data.narrative
        try:
            audio = await self.service.speak_prophecy(text)
        except Exception as e:
            logger.error(f"Speech failed: {e}")
            self.state.finish_speak(SPEECH_UNAVAILABLE_MESSAGE)
            return False

        started = self.player.play_base64(audio)
        self.state.finish_speak()
        return started

    def export(self, directory: Union[str, Path]) -> Optional[Path]:
        """Save the current result card as a PNG in ``directory``."""
        reading = self.current.result
        if reading is None:
            logger.warning("Export ignored: no result to export")
            return None

        path, _img = export_card(
            reading,
            directory,
            renderer=self.renderer,
            filename_prefix=self.export_settings.filename_prefix,
            width=self.export_settings.width,
        )
        return path
