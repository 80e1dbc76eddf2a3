"""Talk2Me - hands-free spoken conversation with barge-in."""

__version__ = "0.1.0"
