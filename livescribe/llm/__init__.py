from .analyzer import LLMAnalyzer
from .base import LLMClientConfig, UniversalLLM
from .language_detector import KeywordLanguageDetector, LanguageProfile, LLMLanguageDetector
from .translator import LLMTranslator, language_name
from .types import AnalysisResponse, LanguageDetectionResponse, TranslationResponse
from .utils import LRUCache, base_language, get_api_credentials, truncate_context

__all__ = [
    # Core classes
    "UniversalLLM",
    "LLMAnalyzer",
    "LLMTranslator",
    "LLMLanguageDetector",
    "KeywordLanguageDetector",
    # Configuration and types
    "LLMClientConfig",
    "LanguageProfile",
    "AnalysisResponse",
    "LanguageDetectionResponse",
    "TranslationResponse",
    # Utilities
    "LRUCache",
    "base_language",
    "get_api_credentials",
    "language_name",
    "truncate_context",
]
