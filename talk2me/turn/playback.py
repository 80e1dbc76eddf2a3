"""Contract for the playback that the turn-taking layer may interrupt."""

from abc import ABC, abstractmethod


class PlaybackControl(ABC):
    """A reply being played back to the participant."""

    @abstractmethod
    def pause(self) -> None:
        """Halt playback immediately."""
        pass

    @property
    @abstractmethod
    def is_paused(self) -> bool:
        pass
