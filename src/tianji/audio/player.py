"""Speech playback for TIANJI.

Gemini TTS returns raw 16-bit little-endian PCM, mono, 24kHz, base64
encoded. It is decoded into a normalised float buffer and played once
through pygame.mixer.
"""

import base64
import logging
from typing import Optional

import numpy as np
import pygame
from numpy.typing import NDArray

logger = logging.getLogger(__name__)

SAMPLE_RATE = 24000
INT16_SCALE = 32768.0


def decode_pcm16(base64_data: str) -> NDArray[np.float32]:
    """Decode base64 PCM16 into float samples in [-1.0, 1.0)."""
    raw = base64.b64decode(base64_data)
    if len(raw) % 2:
        raw = raw[:-1]  # trailing half-sample
    samples = np.frombuffer(raw, dtype="<i2")
    return samples.astype(np.float32) / INT16_SCALE


def resample(samples: NDArray[np.float32], source_rate: int, target_rate: int) -> NDArray[np.float32]:
    """Linear resampling, used when the mixer runs at another rate."""
    if source_rate == target_rate or len(samples) == 0:
        return samples
    duration = len(samples) / source_rate
    target_len = max(1, int(round(duration * target_rate)))
    source_t = np.arange(len(samples)) / source_rate
    target_t = np.arange(target_len) / target_rate
    return np.interp(target_t, source_t, samples).astype(np.float32)


def to_mixer_array(samples: NDArray[np.float32], channels: int) -> NDArray[np.int16]:
    """Convert float samples to the int16 layout pygame.sndarray expects."""
    pcm = np.clip(samples * INT16_SCALE, -INT16_SCALE, INT16_SCALE - 1).astype(np.int16)
    if channels == 1:
        return pcm
    return np.ascontiguousarray(np.repeat(pcm[:, None], channels, axis=1))


class SpeechPlayer:
    """Plays synthesized readings. Failures are logged, never raised.

    Speech always arrives at SAMPLE_RATE; only the mixer frequency used when
    this player initialises the mixer is configurable.
    """

    def __init__(self, mixer_frequency: int = SAMPLE_RATE, channels: int = 1):
        self.mixer_frequency = mixer_frequency
        self.channels = channels
        self._channel: Optional[pygame.mixer.Channel] = None

    def _ensure_mixer(self) -> tuple:
        """Initialise the mixer if needed; return (frequency, channels)."""
        current = pygame.mixer.get_init()
        if current is None:
            pygame.mixer.init(frequency=self.mixer_frequency, size=-16, channels=self.channels)
            current = pygame.mixer.get_init()
            logger.info(f"Audio mixer initialized: {current}")
        frequency, _format, channels = current
        return frequency, channels

    def play_base64(self, base64_data: str) -> bool:
        """Decode and play one prophecy, once.

        Returns:
            True if playback started
        """
        try:
            samples = decode_pcm16(base64_data)
            if len(samples) == 0:
                logger.warning("Empty audio buffer, nothing to play")
                return False

            frequency, channels = self._ensure_mixer()
            samples = resample(samples, SAMPLE_RATE, frequency)
            sound = pygame.sndarray.make_sound(to_mixer_array(samples, channels))
            self._channel = sound.play()

            logger.info(f"Playing prophecy ({len(samples) / frequency:.1f}s)")
            return True

        except Exception as e:
            logger.error(f"音频播放失败: {e}")
            return False

    @property
    def is_playing(self) -> bool:
        return bool(self._channel and self._channel.get_busy())

    def stop(self) -> None:
        """Stop any active playback."""
        if self._channel is not None:
            self._channel.stop()
            self._channel = None

    def cleanup(self) -> None:
        """Release the mixer."""
        self.stop()
        if pygame.mixer.get_init():
            pygame.mixer.quit()
            logger.info("Audio mixer cleaned up")
