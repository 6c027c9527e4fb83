"""
tests/test_config.py
====================
Unified configuration and centralized logging.
"""

import logging
import os
import sys
import unittest
from unittest.mock import patch

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from livescribe.config import (
    FeatureConfig,
    LLMConfig,
    UnifiedConfig,
    get_config,
    get_runtime_settings,
    reset_config,
    update_config,
)
from livescribe.logging_config import get_logger


class TestUnifiedConfig(unittest.TestCase):
    def tearDown(self):
        reset_config()

    def test_defaults(self):
        config = UnifiedConfig()
        self.assertEqual(config.dispatch.language.cooldown_ms, 2000)
        self.assertEqual(config.dispatch.language.min_chars, 25)
        self.assertEqual(config.dispatch.language.min_words, 2)
        self.assertEqual(config.session.language_window, 5)
        self.assertEqual(config.session.language_switch_votes, 3)
        self.assertFalse(config.features.auto_translation)

    def test_global_instance(self):
        self.assertIs(get_config(), get_config())
        first = get_config()
        reset_config()
        self.assertIsNot(get_config(), first)

    def test_update_with_dict(self):
        update_config(features={"auto_translation": True}, session={"translation_target": "es-ES"})
        self.assertTrue(get_config().features.auto_translation)
        self.assertEqual(get_runtime_settings()["translation_target"], "es-ES")

    def test_update_with_model(self):
        update_config(features=FeatureConfig(auto_analysis=False))
        self.assertFalse(get_config().features.auto_analysis)

    def test_unknown_section(self):
        with self.assertRaises(ValueError):
            update_config(plugins={"enabled": True})

    @patch.dict(os.environ, {"LLM_TIMEOUT": "12.5", "LLM_TRANSLATION_LLM": "gpt-4.1-nano"})
    def test_llm_settings_from_environment(self):
        settings = LLMConfig()
        self.assertEqual(settings.timeout, 12.5)
        self.assertEqual(settings.translation_llm, "gpt-4.1-nano")


class TestLogging(unittest.TestCase):
    def test_get_logger(self):
        logger = get_logger("livescribe.tests")
        self.assertIsInstance(logger, logging.Logger)
        self.assertEqual(logger.name, "livescribe.tests")


if __name__ == "__main__":
    unittest.main()
