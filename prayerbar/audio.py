"""Adhan audio playback through pygame's mixer."""

import logging
import os
from pathlib import Path

import pygame

from prayerbar.location import CONFIG_DIR

DEFAULT_ADHAN_FILE = os.path.join(CONFIG_DIR, "adhan.mp3")
DEFAULT_VOLUME = 0.8


class AdhanPlayer:
    """Fire-and-forget adhan player; errors are logged, never raised."""

    def __init__(self, path: str = DEFAULT_ADHAN_FILE, volume: float = DEFAULT_VOLUME):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.path = Path(path)
        self._volume = max(0.0, min(1.0, volume))
        self._mixer_ready = False

    def _init_mixer(self) -> bool:
        if not self._mixer_ready:
            try:
                pygame.mixer.init()
                self._mixer_ready = True
            except pygame.error as e:
                self.logger.error(f"Audio mixer unavailable: {e}")
        return self._mixer_ready

    @property
    def is_playing(self) -> bool:
        return self._mixer_ready and pygame.mixer.music.get_busy()

    @property
    def volume(self) -> float:
        return self._volume

    @volume.setter
    def volume(self, value: float) -> None:
        self._volume = max(0.0, min(1.0, float(value)))
        if self._mixer_ready:
            pygame.mixer.music.set_volume(self._volume)

    def play(self) -> bool:
        """Start the adhan unless it is already playing. Returns True if started."""
        if self.is_playing:
            return False
        if not self.path.exists():
            self.logger.error(f"Adhan file not found: {self.path}")
            return False
        if not self._init_mixer():
            return False
        try:
            pygame.mixer.music.load(str(self.path))
            pygame.mixer.music.set_volume(self._volume)
            pygame.mixer.music.play()
        except pygame.error as e:
            self.logger.error(f"Failed to play adhan: {e}")
            return False
        self.logger.info("Adhan playback started")
        return True

    def stop(self) -> None:
        if self.is_playing:
            pygame.mixer.music.stop()
