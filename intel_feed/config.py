"""Configuration management for Intel Feed."""

import os
from dataclasses import dataclass


@dataclass
class HackerNewsConfig:
    """Configuration for the Hacker News story API."""

    base_url: str = "https://hacker-news.firebaseio.com/v0"
    timeout: int = 30
    user_agent: str = "Intel-Feed/1.0 (Terminal headline feed)"


@dataclass
class OllamaConfig:
    """Configuration for the external classifier command."""

    executable: str = "ollama"
    model: str = "llama3.2"
    timeout: int = 120


@dataclass
class FeedConfig:
    """Configuration for the feed buffer and poll loop."""

    max_entries: int = 20
    stories_per_cycle: int = 1
    poll_interval_seconds: float = 5.0
    classify_enabled: bool = True
    title: str = "High-Value Intelligence Feed"


class Config:
    """Main configuration manager."""

    DEFAULT_LOG_FILE = "intel_feed.log"
    FALSE_VALUES = ("0", "false", "no", "off")

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.ollama_model = os.getenv("OLLAMA_MODEL", OllamaConfig.model)
        self.classify_enabled = (
            os.getenv("INTEL_FEED_CLASSIFY", "1").strip().lower()
            not in self.FALSE_VALUES
        )
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        # stderr is the feed terminal, so an empty value means the default file
        self.log_file = (
            os.getenv("INTEL_FEED_LOG_FILE", "").strip() or self.DEFAULT_LOG_FILE
        )

        if not self.ollama_model.strip():
            raise ValueError("OLLAMA_MODEL cannot be empty")
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid LOG_LEVEL: {self.log_level}")

    def get_hacker_news_config(self) -> HackerNewsConfig:
        """Get story API configuration."""
        return HackerNewsConfig()

    def get_ollama_config(self) -> OllamaConfig:
        """Get classifier configuration."""
        return OllamaConfig(model=self.ollama_model.strip())

    def get_feed_config(self) -> FeedConfig:
        """Get feed and poll loop configuration."""
        return FeedConfig(classify_enabled=self.classify_enabled)
