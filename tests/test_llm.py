"""
tests/test_llm.py
=================
LLM-backed enrichment backends and the offline keyword language detector.

All tests are OFFLINE: the UniversalLLM client is replaced by a mock, no API key is needed.
"""

import os
import sys
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from livescribe.config import LLMConfig
from livescribe.errors import EnrichmentError, LanguageDetectionError
from livescribe.llm import (
    AnalysisResponse,
    KeywordLanguageDetector,
    LanguageDetectionResponse,
    LLMAnalyzer,
    LLMClientConfig,
    LLMLanguageDetector,
    LLMTranslator,
    LRUCache,
    TranslationResponse,
    UniversalLLM,
    base_language,
    language_name,
    truncate_context,
)


def _mock_client(result=None, error=None):
    client = MagicMock(spec=UniversalLLM)
    client.invoke_structured = AsyncMock(return_value=result, side_effect=error)
    return client


# ===================================================================
# Utilities
# ===================================================================


class TestUtils(unittest.TestCase):
    def test_truncate_context_keeps_the_tail(self):
        self.assertEqual(truncate_context("short text", 100), "short text")
        self.assertEqual(truncate_context("abcdefghij klmnopqrst uvwxyz", 20), "klmnopqrst uvwxyz")

    def test_base_language(self):
        self.assertEqual(base_language("pt-BR"), "pt")
        self.assertEqual(base_language("EN"), "en")
        self.assertEqual(base_language(""), "")

    def test_language_name(self):
        self.assertEqual(language_name("pt-BR"), "Brazilian Portuguese")
        self.assertEqual(language_name("fr-FR"), "fr-FR")

    def test_lru_cache_evicts_least_recent(self):
        cache = LRUCache(max_size=2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.get("a")
        cache.put("c", 3)

        self.assertEqual(cache.get("a"), (True, 1))
        self.assertEqual(cache.get("b"), (False, None))
        self.assertEqual(cache.size(), 2)

    def test_lru_cache_disabled(self):
        cache = LRUCache(max_size=0)
        cache.put("a", 1)
        self.assertEqual(cache.size(), 0)


class TestUniversalLLM(unittest.TestCase):
    @patch("livescribe.llm.base.get_api_credentials", return_value=(None, None))
    def test_missing_api_key(self, _):
        client = UniversalLLM(LLMClientConfig(model_id="gpt-4.1-nano"))
        with self.assertRaises(ValueError):
            client._get_llm()

    @patch("livescribe.llm.base.get_api_credentials", return_value=("key", "https://openrouter.ai/api/v1"))
    def test_model_info(self, _):
        settings = LLMConfig(timeout=12.0)
        client = UniversalLLM(LLMClientConfig.from_settings(settings, settings.translation_llm))
        info = client.get_model_info()

        self.assertEqual(info["model_id"], settings.translation_llm)
        self.assertEqual(info["timeout"], 12.0)
        self.assertEqual(info["provider"], "openrouter")
        self.assertTrue(info["has_api_key"])


# ===================================================================
# Analyzer / Translator
# ===================================================================


class TestLLMAnalyzer(unittest.IsolatedAsyncioTestCase):
    async def test_passes_context_and_question(self):
        client = _mock_client(AnalysisResponse(answer="Quatro.", confidence=0.95))
        analyzer = LLMAnalyzer(LLMConfig(), client=client)

        result = await analyzer.analyze("Estamos estudando matemática", "Quanto é 2 + 2")

        self.assertEqual(result.answer, "Quatro.")
        variables = client.invoke_structured.call_args[0][1]
        self.assertEqual(variables["transcription"], "Estamos estudando matemática")
        self.assertEqual(variables["question"], "Quanto é 2 + 2")

    async def test_long_context_is_truncated(self):
        client = _mock_client(AnalysisResponse(answer="Yes"))
        analyzer = LLMAnalyzer(LLMConfig(max_context_chars=200), client=client)

        await analyzer.analyze("word " * 200, "Is it long?")
        self.assertLessEqual(len(client.invoke_structured.call_args[0][1]["transcription"]), 200)

    async def test_empty_question(self):
        analyzer = LLMAnalyzer(LLMConfig(), client=_mock_client())
        with self.assertRaises(EnrichmentError):
            await analyzer.analyze("context", "  ")

    async def test_empty_answer(self):
        analyzer = LLMAnalyzer(LLMConfig(), client=_mock_client(AnalysisResponse(answer=" ")))
        with self.assertRaises(EnrichmentError):
            await analyzer.analyze("", "What now?")


class TestLLMTranslator(unittest.IsolatedAsyncioTestCase):
    async def test_translates_and_caches(self):
        client = _mock_client(TranslationResponse(translated_text="Hello world", confidence=0.9))
        translator = LLMTranslator(LLMConfig(), client=client)

        first = await translator.translate("Olá mundo", "en-US")
        second = await translator.translate("Olá mundo ", "en-US")

        self.assertEqual(first.translated_text, "Hello world")
        self.assertIs(first, second)
        self.assertEqual(client.invoke_structured.await_count, 1)
        self.assertEqual(client.invoke_structured.call_args[0][1]["language"], "American English")

    async def test_different_target_is_a_cache_miss(self):
        client = _mock_client(TranslationResponse(translated_text="Hola mundo"))
        translator = LLMTranslator(LLMConfig(), client=client)

        await translator.translate("Olá mundo", "en-US")
        await translator.translate("Olá mundo", "es-ES")
        self.assertEqual(client.invoke_structured.await_count, 2)

    async def test_rejects_bad_input_and_output(self):
        translator = LLMTranslator(LLMConfig(), client=_mock_client(TranslationResponse(translated_text="")))
        with self.assertRaises(EnrichmentError):
            await translator.translate("", "en-US")
        with self.assertRaises(EnrichmentError):
            await translator.translate("Olá", "")
        with self.assertRaises(EnrichmentError):
            await translator.translate("Olá", "en-US")

    async def test_backend_errors_propagate(self):
        translator = LLMTranslator(LLMConfig(), client=_mock_client(error=RuntimeError("rate limited")))
        with self.assertRaises(RuntimeError):
            await translator.translate("Olá", "en-US")


# ===================================================================
# Language detection
# ===================================================================


class TestKeywordLanguageDetector(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.detector = KeywordLanguageDetector()

    async def test_portuguese(self):
        result = await self.detector.detect_language("Olá, você está bem? Não sei o que fazer")
        self.assertEqual(result.language_code, "pt-BR")
        self.assertEqual(result.confidence, 0.95)

    async def test_english(self):
        result = await self.detector.detect_language("What is the time and where are they")
        self.assertEqual(result.language_code, "en-US")

    async def test_spanish(self):
        result = await self.detector.detect_language("Hola, pero hay muchos problemas con los datos del usuario")
        self.assertEqual(result.language_code, "es-ES")

    async def test_alternatives_add_evidence(self):
        scores_alone = self.detector.scores("Okay okay")
        self.assertEqual(scores_alone.get("en-US", 0), 0)

        result = await self.detector.detect_language("Okay okay", ["what is the plan", "where are they"])
        self.assertEqual(result.language_code, "en-US")

    async def test_enabled_languages_restrict_candidates(self):
        detector = KeywordLanguageDetector(enabled_languages=["en-US"])
        with self.assertRaises(LanguageDetectionError):
            await detector.detect_language("Olá, você está bem? Não sei")

    async def test_nothing_recognised(self):
        with self.assertRaises(LanguageDetectionError):
            await self.detector.detect_language("xyzzy plugh")


class TestLLMLanguageDetector(unittest.IsolatedAsyncioTestCase):
    async def test_uses_llm_result(self):
        client = _mock_client(LanguageDetectionResponse(language_code="es-ES", confidence=0.93))
        detector = LLMLanguageDetector(["pt-BR", "en-US", "es-ES"], LLMConfig(), client=client)

        result = await detector.detect_language("Hola amigos", ["Ola amigos"])
        self.assertEqual(result.language_code, "es-ES")
        variables = client.invoke_structured.call_args[0][1]
        self.assertEqual(variables["candidates"], "pt-BR, en-US, es-ES")
        self.assertEqual(variables["alternatives"], "Ola amigos")

    async def test_falls_back_on_error(self):
        detector = LLMLanguageDetector(["pt-BR", "en-US"], LLMConfig(), client=_mock_client(error=RuntimeError("offline")))
        result = await detector.detect_language("Olá, você está bem? Não sei o que fazer")
        self.assertEqual(result.language_code, "pt-BR")

    async def test_falls_back_on_disabled_language(self):
        client = _mock_client(LanguageDetectionResponse(language_code="fr-FR", confidence=0.99))
        detector = LLMLanguageDetector(["pt-BR", "en-US"], LLMConfig(), client=client)
        result = await detector.detect_language("What is the time and where are they")
        self.assertEqual(result.language_code, "en-US")

    async def test_empty_text(self):
        detector = LLMLanguageDetector(["en-US"], LLMConfig(), client=_mock_client())
        with self.assertRaises(LanguageDetectionError):
            await detector.detect_language("")


if __name__ == "__main__":
    unittest.main()
