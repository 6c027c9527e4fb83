from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .base_processor import INTERIM_MARKER, BaseProcessor


@dataclass(frozen=True)
class TranscriptUpdate:
    """Running transcript as seen after one recognizer callback."""

    final_text: str = ""
    interim_text: str = ""

    def to_marked(self) -> str:
        """Render as the legacy single string with an interim marker."""
        if self.interim_text:
            return f"{self.final_text}{INTERIM_MARKER}{self.interim_text}"
        return self.final_text


def parse_marked_transcript(raw: str) -> TranscriptUpdate:
    """Split a legacy `final[INTERIM]interim` string into its two halves.

    Without a marker the whole string is final and the interim half is empty.
    """
    if not raw:
        return TranscriptUpdate()

    if INTERIM_MARKER in raw:
        final_part, interim_part = raw.split(INTERIM_MARKER, 1)
        return TranscriptUpdate(final_part.strip(), interim_part.strip())

    return TranscriptUpdate(raw.strip(), "")


@dataclass(frozen=True)
class RecognitionAlternative:
    transcript: str
    confidence: Optional[float] = None


@dataclass(frozen=True)
class RecognitionResult:
    """One entry of a recognizer result list (Web Speech API shape)."""

    alternatives: Sequence[RecognitionAlternative]
    is_final: bool = False

    @property
    def transcript(self) -> str:
        return self.alternatives[0].transcript if self.alternatives else ""


@dataclass
class AccumulatedCallback:
    update: TranscriptUpdate
    new_final_text: str = ""
    alternatives: List[Dict[str, Optional[float]]] = field(default_factory=list)


class SpeechResultAccumulator(BaseProcessor):
    """Builds a cumulative TranscriptUpdate from incremental recognizer callbacks.

    Each callback carries the results from `result_index` onward. Final results
    are appended to the running final transcript; interim results replace the
    previous interim text.
    """

    max_alternatives = 3
    overlap_words = 3

    def __init__(self, config=None):
        super().__init__(config)
        self.reset()

    def reset(self):
        self.final_text = ""
        self.interim_text = ""

    @property
    def update(self) -> TranscriptUpdate:
        return TranscriptUpdate(self.final_text, self.interim_text)

    def on_result(self, result_index: int, results: Sequence[RecognitionResult]) -> AccumulatedCallback:
        """Fold one recognizer callback into the running transcript.

        Args:
            result_index: Index of the first result that changed in this callback
            results: Full result list delivered by the recognizer

        Returns:
            AccumulatedCallback: Cumulative update, the final text appended by this callback and alternatives
        """
        final_chunk = ""
        interim_chunk = ""
        alternatives: List[Dict[str, Optional[float]]] = []

        for result in results[result_index:]:
            if result.is_final:
                final_chunk += result.transcript
                for alternative in result.alternatives[: self.max_alternatives]:
                    alternatives.append({"transcript": alternative.transcript.strip(), "confidence": alternative.confidence})
            else:
                interim_chunk += result.transcript

        appended = ""
        final_chunk = final_chunk.strip()
        if final_chunk and not self._is_repeat(final_chunk):
            self.final_text = f"{self.final_text} {final_chunk}" if self.final_text else final_chunk
            appended = final_chunk
        elif final_chunk:
            self.logger.debug(f"Ignoring repeated final chunk: {final_chunk[:50]!r}")

        self.interim_text = interim_chunk.strip()
        return AccumulatedCallback(self.update, appended, alternatives)

    def _is_repeat(self, chunk: str) -> bool:
        if chunk in self.final_text:
            return True
        last_words = " ".join(self.final_text.split(" ")[-self.overlap_words :]).lower()
        first_words = " ".join(chunk.split(" ")[: self.overlap_words]).lower()
        return bool(last_words) and last_words == first_words
