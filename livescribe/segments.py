import time
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from .logging_config import get_logger

logger = get_logger(__name__)


class EnrichmentKind(str, Enum):
    TRANSLATION = "translation"
    LANGUAGE = "language"
    ANALYSIS = "analysis"


class EnrichmentState(str, Enum):
    PENDING = "pending"
    DONE = "done"
    ERROR = "error"


# =============================================================================
# Enrichment Results
# =============================================================================


@dataclass(frozen=True)
class TranslationResult:
    text: str
    target_language: str
    confidence: float = 0.0


@dataclass(frozen=True)
class LanguageResult:
    language_code: str
    confidence: float = 0.0


@dataclass(frozen=True)
class AnalysisResult:
    answer: str
    confidence: float = 0.0


EnrichmentResult = Union[TranslationResult, LanguageResult, AnalysisResult]


@dataclass(frozen=True)
class Enrichment:
    """State of one enrichment kind on one segment.

    `request_id` identifies the dispatch that owns the state, so a late result
    from a superseded dispatch can be told apart from the current one.
    """

    state: EnrichmentState
    request_id: str
    result: Optional[EnrichmentResult] = None
    error: Optional[str] = None

    @classmethod
    def pending(cls, request_id: str) -> "Enrichment":
        return cls(EnrichmentState.PENDING, request_id)

    def done(self, result: EnrichmentResult) -> "Enrichment":
        return replace(self, state=EnrichmentState.DONE, result=result, error=None)

    def failed(self, message: str) -> "Enrichment":
        return replace(self, state=EnrichmentState.ERROR, error=message)

    @property
    def is_settled(self) -> bool:
        return self.state != EnrichmentState.PENDING


# =============================================================================
# Segment
# =============================================================================


_VISIBILITY_FIELDS = {
    EnrichmentKind.TRANSLATION: "show_translation",
    EnrichmentKind.ANALYSIS: "show_analysis",
}


@dataclass(frozen=True)
class Segment:
    """An immutable unit of finalized transcript text plus its enrichment state.

    Every change produces a new Segment through `dataclasses.replace`; `text`,
    `id` and `created_at` are carried over untouched.
    """

    id: str
    text: str
    created_at: float
    translation: Optional[Enrichment] = None
    language: Optional[Enrichment] = None
    analysis: Optional[Enrichment] = None
    show_translation: bool = False
    show_analysis: bool = False

    @classmethod
    def create(cls, text: str, created_at: Optional[float] = None) -> "Segment":
        return cls(id=uuid.uuid4().hex, text=text, created_at=time.time() if created_at is None else created_at)

    def enrichment(self, kind: EnrichmentKind) -> Optional[Enrichment]:
        return getattr(self, kind.value)

    def with_enrichment(self, kind: EnrichmentKind, enrichment: Optional[Enrichment]) -> "Segment":
        return replace(self, **{kind.value: enrichment})

    def is_visible(self, kind: EnrichmentKind) -> bool:
        field_name = _VISIBILITY_FIELDS.get(kind)
        return bool(field_name and getattr(self, field_name))

    def with_visibility(self, kind: EnrichmentKind, visible: bool) -> "Segment":
        field_name = _VISIBILITY_FIELDS.get(kind)
        if field_name is None:
            raise ValueError(f"{kind.value} results have no visibility toggle")
        return replace(self, **{field_name: visible})

    @property
    def timestamp_label(self) -> str:
        """Local wall-clock time of finalization as HH:MM:SS."""
        return datetime.fromtimestamp(self.created_at).strftime("%H:%M:%S")

    def to_dict(self) -> Dict[str, Any]:
        """Render the segment for a UI layer."""

        def _render(enrichment: Optional[Enrichment]) -> Optional[Dict[str, Any]]:
            if enrichment is None:
                return None
            rendered = {"state": enrichment.state.value, "error": enrichment.error}
            if enrichment.result is not None:
                rendered.update(vars(enrichment.result))
            return rendered

        return {
            "id": self.id,
            "text": self.text,
            "created_at": self.created_at,
            "timestamp": self.timestamp_label,
            "translation": _render(self.translation),
            "language": _render(self.language),
            "analysis": _render(self.analysis),
            "show_translation": self.show_translation,
            "show_analysis": self.show_analysis,
        }


# =============================================================================
# Segment Store
# =============================================================================


class SegmentStore:
    """Ordered collection of segments with whole-collection replacement on every change.

    Readers always receive a tuple snapshot; a mutation builds a new tuple and
    swaps it in with a single assignment, so an awaiting coroutine can never
    observe a half-applied update.
    """

    def __init__(self):
        self._segments: Tuple[Segment, ...] = ()
        self._listeners: List[Callable[[Tuple[Segment, ...]], None]] = []

    def __len__(self) -> int:
        return len(self._segments)

    def __iter__(self):
        return iter(self._segments)

    @property
    def segments(self) -> Tuple[Segment, ...]:
        return self._segments

    def get(self, segment_id: str) -> Optional[Segment]:
        for segment in self._segments:
            if segment.id == segment_id:
                return segment
        return None

    def add_listener(self, callback: Callable[[Tuple[Segment, ...]], None]):
        """Register a callable receiving the new snapshot after every change."""
        self._listeners.append(callback)

    def extend(self, segments: Iterable[Segment]) -> Tuple[Segment, ...]:
        new_segments = tuple(segments)
        if new_segments:
            self._replace(self._segments + new_segments)
        return new_segments

    def update(self, segment_id: str, change: Callable[[Segment], Segment]) -> bool:
        """Replace the segment with `segment_id` by `change(segment)`.

        Returns:
            bool: False when the id is not in the store (e.g. cleared meanwhile)
        """
        for index, segment in enumerate(self._segments):
            if segment.id == segment_id:
                updated = change(segment)
                if updated is segment:
                    return True
                if updated.id != segment.id or updated.text != segment.text:
                    raise ValueError("Segment id and text cannot change after creation")
                self._replace(self._segments[:index] + (updated,) + self._segments[index + 1 :])
                return True
        return False

    def clear(self) -> int:
        """Discard every segment and return how many were dropped."""
        dropped = len(self._segments)
        self._replace(())
        return dropped

    def _replace(self, segments: Tuple[Segment, ...]):
        self._segments = segments
        for callback in self._listeners:
            try:
                callback(segments)
            except Exception as e:
                logger.error(f"Error in segment store listener: {e}")
