from dataclasses import dataclass
from typing import Union

from .asr_adapter import TranscriptUpdate, parse_marked_transcript
from .base_processor import BaseProcessor, _leading_noise_regex

# Deltas shorter than this after stripping are treated as recognizer noise
MIN_DELTA_CHARS = 2


@dataclass(frozen=True)
class ReconcileResult:
    delta: str
    interim_text: str
    final_text: str
    restarted: bool = False

    @property
    def has_delta(self) -> bool:
        return bool(self.delta)


def reconcile(transcript: Union[str, TranscriptUpdate], last_final_text: str) -> ReconcileResult:
    """Compute the final text appended since `last_final_text`.

    Pure function: the same inputs always produce the same result. When the
    candidate final text no longer extends `last_final_text` (recognizer
    restart) the whole candidate is treated as new.

    Args:
        transcript: Current running transcript, either split or as a marked string
        last_final_text: Final text already turned into segments

    Returns:
        ReconcileResult: New final delta (empty when nothing meaningful was added),
        interim text and the full candidate final text the caller should store
    """
    update = parse_marked_transcript(transcript) if isinstance(transcript, str) else transcript
    final_text = update.final_text.strip()
    interim_text = update.interim_text.strip()

    restarted = False
    if not final_text or final_text == last_final_text:
        return ReconcileResult("", interim_text, final_text)

    if last_final_text and final_text.startswith(last_final_text):
        delta = final_text[len(last_final_text) :]
    else:
        delta = final_text
        restarted = bool(last_final_text)

    delta = _leading_noise_regex.sub("", delta).strip()
    if len(delta) < MIN_DELTA_CHARS:
        delta = ""

    return ReconcileResult(delta, interim_text, final_text, restarted)


class TranscriptReconciler(BaseProcessor):
    """Running transcript state for one recording: the reconciled prefix and the live interim text."""

    def __init__(self, config=None):
        super().__init__(config)
        self.reset()

    def reset(self):
        self.last_final_text = ""
        self.interim_text = ""

    def process(self, transcript: Union[str, TranscriptUpdate]) -> ReconcileResult:
        result = reconcile(transcript, self.last_final_text)
        self.interim_text = result.interim_text

        if result.restarted:
            self.logger.info(f"Recognizer restart detected, treating {len(result.final_text)} chars as new")

        if result.has_delta:
            self.last_final_text = result.final_text
            self.logger.debug(f"Reconciled {len(result.delta)} new chars: {result.delta[:60]!r}")

        return result
