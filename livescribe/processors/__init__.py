"""
livescribe Processors Package

Components turning a mutating recognizer transcript into enriched segments:
- SpeechResultAccumulator: Recognizer callbacks -> cumulative TranscriptUpdate
- TranscriptReconciler / reconcile: New final text since the last reconciliation
- split_sentences: Delta -> sentence units
- EnrichmentDispatcher: Async enrichment merged back by segment id
- DispatchGuard / should_dispatch: Cooldown and dedup for automatic dispatch
"""

from .asr_adapter import (
    RecognitionAlternative,
    RecognitionResult,
    SpeechResultAccumulator,
    TranscriptUpdate,
    parse_marked_transcript,
)
from .base_processor import INTERIM_MARKER, BaseProcessor
from .dispatcher import EnrichmentDispatcher
from .guard import DispatchGuard, should_dispatch
from .reconciler import ReconcileResult, TranscriptReconciler, reconcile
from .splitter import split_sentence_units, split_sentences
from .stats import DispatchStats

__all__ = [
    "BaseProcessor",
    "DispatchGuard",
    "DispatchStats",
    "EnrichmentDispatcher",
    "INTERIM_MARKER",
    "RecognitionAlternative",
    "RecognitionResult",
    "ReconcileResult",
    "SpeechResultAccumulator",
    "TranscriptReconciler",
    "TranscriptUpdate",
    "parse_marked_transcript",
    "reconcile",
    "should_dispatch",
    "split_sentence_units",
    "split_sentences",
]
