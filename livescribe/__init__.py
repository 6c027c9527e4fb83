from .config import UnifiedConfig, get_config, reset_config, update_config
from .errors import EnrichmentError, LanguageDetectionError, LivescribeError, RuleTableError
from .processors import EnrichmentDispatcher, TranscriptReconciler, TranscriptUpdate, reconcile, split_sentences
from .segments import (
    AnalysisResult,
    Enrichment,
    EnrichmentKind,
    EnrichmentState,
    LanguageResult,
    Segment,
    SegmentStore,
    TranslationResult,
)
from .session import LanguageTracker, SessionContext, TranscriptionSession, create_session
from .triggers import TriggerEngine, TriggerReport

__all__ = [
    "TranscriptionSession",
    "create_session",
    "SessionContext",
    "LanguageTracker",
    # Segments
    "Segment",
    "SegmentStore",
    "Enrichment",
    "EnrichmentKind",
    "EnrichmentState",
    "TranslationResult",
    "LanguageResult",
    "AnalysisResult",
    # Pipeline
    "TranscriptUpdate",
    "TranscriptReconciler",
    "reconcile",
    "split_sentences",
    "EnrichmentDispatcher",
    "TriggerEngine",
    "TriggerReport",
    # Configuration
    "UnifiedConfig",
    "get_config",
    "reset_config",
    "update_config",
    # Errors
    "LivescribeError",
    "EnrichmentError",
    "LanguageDetectionError",
    "RuleTableError",
]
