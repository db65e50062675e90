"""Terminal feed of Hacker News headlines rated by a local model."""

__version__ = "1.0.0"
