"""
TIANJI Audio - spoken prophecy playback.
"""

from .player import SpeechPlayer, decode_pcm16

__all__ = ["SpeechPlayer", "decode_pcm16"]
