"""Turn-taking: speech monitoring, recording lifecycle and barge-in."""

from .events import TurnEventListener
from .playback import PlaybackControl
from .publisher import TurnEventPublisher
from .state_machine import TurnTakingStateMachine

__all__ = [
    "TurnEventListener",
    "PlaybackControl",
    "TurnEventPublisher",
    "TurnTakingStateMachine",
]
