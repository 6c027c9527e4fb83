from typing import Optional

from ..config import GuardConfig
from .base_processor import BaseProcessor, count_words, ends_with_strong_punctuation


def is_significant(text: str, min_chars: int, min_words: int) -> bool:
    """Long enough on its own, or a short complete sentence of several words."""
    text = text.strip()
    if len(text) >= min_chars:
        return True
    return count_words(text) >= min_words and ends_with_strong_punctuation(text)


def should_dispatch(
    text: str,
    last_dispatched_text: Optional[str],
    last_dispatched_at_ms: Optional[float],
    now_ms: float,
    config: Optional[GuardConfig] = None,
) -> bool:
    """Decide whether an automatic enrichment dispatch may go out.

    Args:
        text: Text that would be sent to the enrichment backend
        last_dispatched_text: Text of the previous automatic dispatch, if any
        last_dispatched_at_ms: When the previous automatic dispatch happened, if ever
        now_ms: Current time on the same clock
        config: Thresholds, defaults to GuardConfig()

    Returns:
        bool: True if the dispatch should proceed
    """
    config = config or GuardConfig()
    text = text.strip()

    if not text:
        return False

    in_cooldown = last_dispatched_at_ms is not None and now_ms - last_dispatched_at_ms < config.cooldown_ms
    if in_cooldown:
        return False

    if text == last_dispatched_text and not config.repeats_within_cooldown_only:
        return False

    return is_significant(text, config.min_chars, config.min_words)


class DispatchGuard(BaseProcessor):
    """Remembers the last automatic dispatch of one enrichment kind."""

    def __init__(self, config: Optional[GuardConfig] = None, name: str = "enrichment"):
        super().__init__(config or GuardConfig())
        self.name = name
        self.reset()

    def reset(self):
        self.last_text: Optional[str] = None
        self.last_at_ms: Optional[float] = None

    def check(self, text: str, now_ms: float) -> bool:
        """Return whether `text` may be dispatched now, recording it if so."""
        if not should_dispatch(text, self.last_text, self.last_at_ms, now_ms, self.config):
            self.logger.debug(f"{self.name}: automatic dispatch suppressed for {text[:40]!r}")
            return False

        self.last_text = text.strip()
        self.last_at_ms = now_ms
        return True
