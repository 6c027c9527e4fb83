import re

from ..logging_config import get_logger

# Initialize logging using centralized configuration
logger = get_logger(__name__)

# Sentinel splitting settled text from volatile text in legacy single-string transcripts
INTERIM_MARKER = "[INTERIM]"

# Strong sentence terminators, including the full-width forms used by CJK recognizers
STRONG_PUNCTUATION = ".!?。！？"

# Pre-compile regex for stripping what recognizers emit when they resume mid-sentence
_leading_noise_regex = re.compile(r"^[\s.,!?;:。，！？；：]+")


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    return len(text.split())


def ends_with_strong_punctuation(text: str) -> bool:
    stripped = text.rstrip()
    return bool(stripped) and stripped[-1] in STRONG_PUNCTUATION


class BaseProcessor:
    """Base class for the stateful transcript processors."""

    def __init__(self, config=None):
        self.config = config
        self.logger = get_logger(f"livescribe.{self.__class__.__name__}")

    def reset(self):
        """Return the processor to its freshly constructed state. Override in subclasses."""
        pass
