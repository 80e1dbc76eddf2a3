"""Console user interface."""

from .console_view import ConsoleTurnView
from .keyboard_input import LineInputHandler

__all__ = ["ConsoleTurnView", "LineInputHandler"]
