"""Core framework components for TIANJI."""

from .models import CompatibilityResult, FortuneResult, Tab, UserInfo, parse_reading
from .state import Action, AppState, Reading, SessionState

__all__ = [
    "CompatibilityResult",
    "FortuneResult",
    "Tab",
    "UserInfo",
    "parse_reading",
    "Action",
    "AppState",
    "Reading",
    "SessionState",
]
