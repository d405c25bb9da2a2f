# -*- coding: utf-8 -*-
"""
Centralized configuration for the page proofreader.

This module provides a single configuration dataclass that controls
content selection thresholds, annotation caps, pacing of the run loop,
and the correction service model.
"""

from dataclasses import dataclass

from .errors import ConfigError


DEFAULT_MODEL = "claude-sonnet-4-20250514"


@dataclass
class ProofreaderConfig:
    """
    Central configuration for a proofreading session.

    Attributes:
        min_container_width: Minimum rendered width (px) of a content container.
        min_container_height: Minimum rendered height (px) of a content container.
        min_container_text: Minimum characters of text inside a container.

        max_child_elements: Elements with more child elements than this are
            treated as structural wrappers and skipped.
        min_words: Elements with fewer words are skipped.
        max_uppercase_ratio: Elements whose text is more uppercase than this
            are treated as navigation/labels and skipped.
        min_element_size: Minimum rendered width and height (px) of a candidate.
        offscreen_limit: Candidates positioned further than this above or left
            of the page origin are treated as hidden.
        indicator_min_length: Length accepted for elements inside a recognised
            content container, even under their category minimum.
        sentence_check_length: Text longer than this must contain sentence
            punctuation.

        row_tolerance: Top/left differences (px) below this count as the same
            row/column when sorting into reading order.
        max_candidates: Maximum number of candidates returned by selection.

        max_annotations: Maximum annotations rendered per element; further
            changes are summarised with a "+N more changes" indicator.

        max_processed: Hard cap on elements sent to the service per run.
        min_process_chars: Elements with less trimmed text are passed over.
        scroll_settle_delay: Seconds to wait after scrolling an element into view.
        element_pause: Seconds to pause between elements.
        sanitize_output: Clean up service output before diffing.

        model: Model identifier used by the Anthropic correction service.
        max_tokens: Maximum response tokens for a service call.
    """

    # Container discovery
    min_container_width: int = 200
    min_container_height: int = 100
    min_container_text: int = 100

    # Element filtering
    max_child_elements: int = 3
    min_words: int = 3
    max_uppercase_ratio: float = 0.7
    min_element_size: int = 10
    offscreen_limit: int = -1000
    indicator_min_length: int = 30
    sentence_check_length: int = 100

    # Ordering and capping
    row_tolerance: float = 5.0
    max_candidates: int = 20

    # Rendering
    max_annotations: int = 80

    # Run loop
    max_processed: int = 50
    min_process_chars: int = 10
    scroll_settle_delay: float = 0.0
    element_pause: float = 0.0
    sanitize_output: bool = True

    # Correction service
    model: str = DEFAULT_MODEL
    max_tokens: int = 4096

    @property
    def is_paced(self) -> bool:
        """Check if the run loop sleeps between steps."""
        return self.scroll_settle_delay > 0 or self.element_pause > 0

    def __post_init__(self):
        """Validate configuration values."""
        for name in (
            "min_container_width",
            "min_container_height",
            "min_container_text",
            "max_child_elements",
            "min_words",
            "min_element_size",
            "indicator_min_length",
            "sentence_check_length",
            "min_process_chars",
        ):
            value = getattr(self, name)
            if value < 0:
                raise ConfigError(f"{name} must be >= 0, got {value}")
        for name in ("max_candidates", "max_annotations", "max_processed", "max_tokens"):
            value = getattr(self, name)
            if value < 1:
                raise ConfigError(f"{name} must be >= 1, got {value}")
        if not 0.0 < self.max_uppercase_ratio <= 1.0:
            raise ConfigError(
                f"max_uppercase_ratio must be in (0, 1], got {self.max_uppercase_ratio}"
            )
        if self.row_tolerance < 0:
            raise ConfigError(f"row_tolerance must be >= 0, got {self.row_tolerance}")
        if self.scroll_settle_delay < 0 or self.element_pause < 0:
            raise ConfigError("delays must be >= 0")
        if not self.model:
            raise ConfigError("model must not be empty")

    @classmethod
    def interactive(cls, **overrides) -> "ProofreaderConfig":
        """Create config paced for a visible, in-page run.

        Waits for scroll animations to settle and pauses between elements
        so the "currently processing" marker can be followed by a reader.

        Args:
            **overrides: Override any config values

        Returns:
            ProofreaderConfig with interactive pacing
        """
        defaults = {
            "scroll_settle_delay": 0.4,
            "element_pause": 0.8,
        }
        defaults.update(overrides)
        return cls(**defaults)

    @classmethod
    def thorough(cls, **overrides) -> "ProofreaderConfig":
        """Create config that selects and processes more of the page.

        Args:
            **overrides: Override any config values

        Returns:
            ProofreaderConfig with larger caps
        """
        defaults = {
            "max_candidates": 100,
            "max_processed": 100,
            "max_annotations": 200,
        }
        defaults.update(overrides)
        return cls(**defaults)
