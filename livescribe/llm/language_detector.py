import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel, Field, ValidationError

from ..config import LLMConfig, get_config
from ..errors import LanguageDetectionError, RuleTableError
from ..logging_config import get_logger
from ..triggers import load_rule_table
from .base import LLMClientConfig, UniversalLLM
from .types import LanguageDetectionResponse

logger = get_logger(__name__)

_word_strip_regex = re.compile(r"[.,!?;:'\"¿¡()]")


# =============================================================================
# Keyword Detection
# =============================================================================


class LanguageProfile(BaseModel):
    """Common words and a bonus pattern characterising one language."""

    name: str = Field(description="Display name")
    words: List[str] = Field(description="Frequent function words, lowercase")
    pattern: str = Field(description="Regular expression worth a bonus when found")


class KeywordLanguageDetector:
    """
    Offline language identification by function-word coverage.

    Each enabled language scores one point per word found in its list and two
    bonus points when its pattern occurs. Languages covering 10% of the words
    or less are rejected; the highest score wins.
    """

    bonus = 2
    min_coverage = 0.1

    def __init__(self, profiles: Optional[Dict[str, LanguageProfile]] = None, enabled_languages: Optional[Sequence[str]] = None):
        if profiles is None:
            profiles = self._parse(load_rule_table(filename="languages.json"))
        self.profiles = profiles
        self.enabled_languages = list(enabled_languages) if enabled_languages else list(profiles)
        self._patterns = {code: re.compile(profile.pattern, re.IGNORECASE) for code, profile in profiles.items()}
        self._words = {code: set(profile.words) for code, profile in profiles.items()}

    @classmethod
    def from_file(cls, path: Union[str, Path], enabled_languages: Optional[Sequence[str]] = None) -> "KeywordLanguageDetector":
        return cls(cls._parse(load_rule_table(path)), enabled_languages)

    @staticmethod
    def _parse(data: dict) -> Dict[str, LanguageProfile]:
        try:
            return {code: LanguageProfile.model_validate(profile) for code, profile in data.items()}
        except (ValidationError, AttributeError) as e:
            raise RuleTableError(f"Invalid language table: {e}") from e

    def scores(self, text: str) -> Dict[str, float]:
        """Coverage ratio per enabled language."""
        words = [_word_strip_regex.sub("", word) for word in text.lower().split() if len(word) > 1]
        if not words:
            return {}

        coverage = {}
        for code in self.enabled_languages:
            if code not in self.profiles:
                continue
            score = sum(1 for word in words if word in self._words[code])
            if self._patterns[code].search(text):
                score += self.bonus
            coverage[code] = score / len(words)
        return coverage

    async def detect_language(self, text: str, alternatives: Optional[Sequence[str]] = None) -> LanguageDetectionResponse:
        """Identify the language of `text`; alternative transcripts add evidence."""
        combined = " ".join([text, *(alternatives or [])])
        coverage = self.scores(combined)
        candidates = {code: ratio for code, ratio in coverage.items() if ratio > self.min_coverage}

        if not candidates:
            raise LanguageDetectionError("No enabled language recognised in the text")

        # Highest ratio wins; dict order breaks ties in favour of the first enabled language
        best = max(candidates, key=lambda code: candidates[code])
        return LanguageDetectionResponse(
            language_code=best,
            confidence=min(0.95, 0.7 + candidates[best]),
            alternatives_considered=[code for code in candidates if code != best],
        )


# =============================================================================
# LLM Detection
# =============================================================================


class LLMLanguageDetector:
    """Language identification by LLM, restricted to the enabled languages.

    When the model call fails or answers with a language outside the candidates,
    the keyword detector decides instead.
    """

    def __init__(
        self,
        enabled_languages: Optional[Sequence[str]] = None,
        settings: Optional[LLMConfig] = None,
        client: Optional[UniversalLLM] = None,
        fallback: Optional[KeywordLanguageDetector] = None,
    ):
        self.settings = settings or get_config().llm
        self.enabled_languages = list(enabled_languages or get_config().session.enabled_languages)
        self._llm_client = client or UniversalLLM(LLMClientConfig.from_settings(self.settings, self.settings.language_llm))
        self.fallback = fallback or KeywordLanguageDetector(enabled_languages=self.enabled_languages)
        self.prompt = ChatPromptTemplate.from_messages(
            [
                (
                    "system",
                    "Identify the language of a speech recognition transcript. Answer with exactly one of these codes: {candidates}. "
                    "Recognition alternatives, when given, are other hypotheses for the same audio.",
                ),
                ("human", "Transcript:\n{text}\n\nAlternatives:\n{alternatives}"),
            ]
        )

    async def detect_language(self, text: str, alternatives: Optional[Sequence[str]] = None) -> LanguageDetectionResponse:
        if not text or not text.strip():
            raise LanguageDetectionError("Nothing to detect")

        variables = {
            "candidates": ", ".join(self.enabled_languages),
            "text": text.strip(),
            "alternatives": "\n".join(alternatives) if alternatives else "(none)",
        }

        try:
            result = await self._llm_client.invoke_structured(self.prompt, variables, LanguageDetectionResponse)
        except Exception as e:
            logger.warning(f"LLM language detection failed, using keyword detection: {e}")
            return await self.fallback.detect_language(text, alternatives)

        if result.language_code not in self.enabled_languages:
            logger.info(f"LLM detected disabled language {result.language_code!r}, using keyword detection")
            return await self.fallback.detect_language(text, alternatives)

        return result
