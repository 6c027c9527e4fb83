import time
from typing import Optional

from langchain_core.prompts import ChatPromptTemplate

from ..config import LLMConfig, get_config
from ..errors import EnrichmentError
from ..logging_config import get_logger
from .base import LLMClientConfig, UniversalLLM
from .types import TranslationResponse
from .utils import LRUCache

logger = get_logger(__name__)

LANGUAGE_NAMES = {
    "pt-BR": "Brazilian Portuguese",
    "pt-PT": "European Portuguese",
    "en-US": "American English",
    "en-GB": "British English",
    "es-ES": "Spanish",
}


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code, code)


class LLMTranslator:
    """Translates transcript segments, caching recent (text, target) pairs."""

    def __init__(self, settings: Optional[LLMConfig] = None, client: Optional[UniversalLLM] = None):
        self.settings = settings or get_config().llm
        self._llm_client = client or UniversalLLM(LLMClientConfig.from_settings(self.settings, self.settings.translation_llm))
        self.cache = LRUCache(max_size=self.settings.translation_cache_size)
        self.prompt = ChatPromptTemplate.from_messages(
            [
                (
                    "system",
                    "You translate live speech transcripts. The text comes from a speech recognizer and may contain recognition errors; "
                    "translate what the speaker most likely meant. Return only the translation, without quotes or commentary.",
                ),
                ("human", "Translate into {language}:\n{text}"),
            ]
        )

    async def translate(self, text: str, target_language: str) -> TranslationResponse:
        """Translate `text` into the language identified by `target_language` (e.g. 'en-US')."""
        text = text.strip()
        if not text:
            raise EnrichmentError("Nothing to translate")
        if not target_language:
            raise EnrichmentError("No target language selected")

        cache_key = (text, target_language)
        cache_hit, cached = self.cache.get(cache_key)
        if cache_hit:
            logger.debug(f"Translation cache hit for {text[:40]!r} -> {target_language}")
            return cached

        start_time = time.time()
        result = await self._llm_client.invoke_structured(self.prompt, {"language": language_name(target_language), "text": text}, TranslationResponse)

        if not result.translated_text or not result.translated_text.strip():
            raise EnrichmentError("The model returned an empty translation")

        self.cache.put(cache_key, result)
        logger.debug(f"Translated {len(text)} chars to {target_language} in {time.time() - start_time:.2f}s")
        return result
