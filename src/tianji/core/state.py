"""
Explicit UI state container for TIANJI.

The front-end state lives in one immutable AppState. SessionState replaces
it through named actions only and notifies listeners of every change:

    SWITCH_TAB, UPDATE_USER, SET_TARGET_DATE: form editing
    BEGIN_SUBMIT -> FINISH_SUBMIT | FAIL_SUBMIT: one reading request
    BEGIN_SPEAK -> FINISH_SPEAK: one speech request
    ALERT, DISMISS_ALERT: the single modal alert
    RESET: discard the current result
"""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum, auto
from typing import Any, Callable, Literal
import logging

from tianji.core.models import CompatibilityResult, FortuneResult, Tab, UserInfo

logger = logging.getLogger(__name__)

Role = Literal["primary", "partner"]


class Action(Enum):
    """State transitions."""
    SWITCH_TAB = auto()
    UPDATE_USER = auto()
    SET_TARGET_DATE = auto()
    BEGIN_SUBMIT = auto()
    FINISH_SUBMIT = auto()
    FAIL_SUBMIT = auto()
    BEGIN_SPEAK = auto()
    FINISH_SPEAK = auto()
    ALERT = auto()
    DISMISS_ALERT = auto()
    RESET = auto()


@dataclass(frozen=True)
class Reading:
    """A displayed result and the tab that produced it."""
    tab: Tab
    data: FortuneResult | CompatibilityResult


@dataclass(frozen=True)
class AppState:
    """Snapshot of everything the front-end renders."""
    active_tab: Tab = Tab.FORTUNE
    loading: bool = False
    speaking: bool = False
    result: Reading | None = None
    alert_message: str | None = None
    target_date: str = field(default_factory=lambda: date.today().isoformat())
    primary: UserInfo = field(default_factory=UserInfo)
    partner: UserInfo = field(default_factory=lambda: UserInfo(gender="女"))

    def user(self, role: Role) -> UserInfo:
        return self.primary if role == "primary" else self.partner


Listener = Callable[[Action, AppState, AppState], None]


class SessionState:
    """
    Owns the current AppState and applies transitions.

    Busy flags gate re-entry: begin_submit and begin_speak return False
    when a request of the same kind is already in flight.
    """

    def __init__(self, initial: AppState | None = None) -> None:
        self._state = initial or AppState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> AppState:
        """Get current state."""
        return self._state

    def add_listener(self, callback: Listener) -> None:
        """Add a state change listener."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Listener) -> None:
        """Remove a state change listener."""
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _apply(self, action: Action, **changes: Any) -> AppState:
        old_state = self._state
        self._state = replace(old_state, **changes)
        logger.debug(f"State action: {action.name}")

        for listener in self._listeners:
            try:
                listener(action, old_state, self._state)
            except Exception as e:
                logger.error(f"Error in state listener: {e}")

        return self._state

    def switch_tab(self, tab: Tab) -> AppState:
        return self._apply(Action.SWITCH_TAB, active_tab=Tab(tab))

    def update_user(self, role: Role, **fields: str) -> AppState:
        """Edit form fields of the primary person or the partner."""
        if role not in ("primary", "partner"):
            raise ValueError(f"Unknown role: {role}")
        updated = replace(self._state.user(role), **fields)
        return self._apply(Action.UPDATE_USER, **{role: updated})

    def set_target_date(self, target_date: str) -> AppState:
        return self._apply(Action.SET_TARGET_DATE, target_date=target_date)

    def begin_submit(self) -> bool:
        """Enter the loading state, dropping the previous result."""
        if self._state.loading:
            logger.warning("Submit ignored: a reading is already in flight")
            return False
        self._apply(Action.BEGIN_SUBMIT, loading=True, result=None)
        return True

    def finish_submit(self, reading: Reading) -> AppState:
        return self._apply(Action.FINISH_SUBMIT, loading=False, result=reading)

    def fail_submit(self, message: str) -> AppState:
        return self._apply(Action.FAIL_SUBMIT, loading=False, alert_message=message)

    def begin_speak(self) -> bool:
        """Enter the speaking state; requires a result."""
        if self._state.speaking or self._state.result is None:
            return False
        self._apply(Action.BEGIN_SPEAK, speaking=True)
        return True

    def finish_speak(self, alert_message: str | None = None) -> AppState:
        changes: dict[str, Any] = {"speaking": False}
        if alert_message:
            changes["alert_message"] = alert_message
        return self._apply(Action.FINISH_SPEAK, **changes)

    def alert(self, message: str) -> AppState:
        return self._apply(Action.ALERT, alert_message=message)

    def dismiss_alert(self) -> AppState:
        return self._apply(Action.DISMISS_ALERT, alert_message=None)

    def reset(self) -> AppState:
        """Discard the current result."""
        return self._apply(Action.RESET, result=None)
