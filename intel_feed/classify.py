"""Relevance classification using a local Ollama model."""

import subprocess
import time

from .config import OllamaConfig
from .errors import ClassifierError
from .logging_config import create_execution_logger
from .models import Insight, Story

INVALID_RESPONSE_SUMMARY = "Invalid response format from Ollama"
INVALID_RESPONSE_PRIORITY = "Low"


class RelevanceClassifier:
    """Classifier that asks `ollama run` to rate a story headline."""

    PROMPT_TEMPLATE = (
        "You are an expert cybersecurity analyst. Analyze the following "
        "headline and URL to determine its relevance and priority in "
        "cybersecurity. Respond with a priority level (e.g., High, Medium, "
        "Low) and provide a summary if relevant. Keep everything very short."
        "\n\nTitle: {title}\nURL: {url}"
    )

    def __init__(
        self, config: OllamaConfig | None = None, execution_id: str | None = None
    ):
        """Initialize the classifier with Ollama configuration."""
        self.config = config or OllamaConfig()
        self.logger = create_execution_logger("classifier", execution_id)

    def build_prompt(self, story: Story) -> str:
        """Embed the story title and URL in the fixed prompt."""
        return self.PROMPT_TEMPLATE.format(title=story.title, url=story.url)

    def build_command(self, prompt: str) -> list[str]:
        """Return the argument vector for the classifier process."""
        return [self.config.executable, "run", self.config.model, prompt]

    def classify(self, story: Story) -> Insight:
        """Classify a story by running the model and parsing its output.

        Raises:
            ClassifierError: If the process cannot be started, exits
                non-zero or runs past the configured timeout
        """
        command = self.build_command(self.build_prompt(story))
        self.logger.info(
            "Calling Ollama",
            story_title=story.title,
            metrics={"model": self.config.model},
        )

        start_time = time.time()
        try:
            result = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
                timeout=self.config.timeout,
                check=True,
            )
        except FileNotFoundError as e:
            raise self._failure(story, f"{self.config.executable} not found", e) from e
        except subprocess.TimeoutExpired as e:
            raise self._failure(
                story, f"timed out after {self.config.timeout}s", e
            ) from e
        except subprocess.CalledProcessError as e:
            raise self._failure(story, f"exited with status {e.returncode}", e) from e
        except OSError as e:
            raise self._failure(story, str(e), e) from e

        response_time_ms = int((time.time() - start_time) * 1000)
        insight = self.parse_output(story, result.stdout)
        self.logger.info(
            "Story classified",
            story_title=story.title,
            priority=insight.priority,
            metrics={"response_time_ms": response_time_ms},
        )
        return insight

    def parse_output(self, story: Story, output: str) -> Insight:
        """Parse raw model output into an Insight.

        The first line is the priority label, taken verbatim. The remaining
        lines are joined with single spaces into the summary. Output with
        fewer than two lines yields a "Low" insight with a fixed summary.
        """
        lines = output.split("\n")
        if len(lines) < 2:
            self.logger.warning(
                "Invalid response format from Ollama", story_title=story.title
            )
            return Insight(
                title=story.title,
                url=story.url,
                summary=INVALID_RESPONSE_SUMMARY,
                priority=INVALID_RESPONSE_PRIORITY,
            )

        return Insight(
            title=story.title,
            url=story.url,
            summary=" ".join(lines[1:]),
            priority=lines[0],
        )

    def _failure(self, story: Story, reason: str, cause: Exception) -> ClassifierError:
        self.logger.error(
            f"Failed to execute Ollama command: {reason}",
            story_title=story.title,
            error=str(cause),
        )
        return ClassifierError(f"Failed to execute Ollama command: {reason}")
