"""Data models for Intel Feed."""

from dataclasses import dataclass


@dataclass
class Story:
    """Represents a single story headline from the story API."""

    title: str
    url: str
    id: int | None = None


@dataclass
class Insight:
    """Represents the classifier's verdict on a story."""

    title: str
    url: str
    summary: str
    priority: str
