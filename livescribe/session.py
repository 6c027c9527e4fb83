import time
from collections import deque
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Union

from .config import SessionConfig, UnifiedConfig, get_config
from .logging_config import get_logger
from .llm.utils import base_language
from .processors import (
    DispatchGuard,
    EnrichmentDispatcher,
    RecognitionResult,
    SpeechResultAccumulator,
    TranscriptReconciler,
    TranscriptUpdate,
    split_sentence_units,
)
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
from .triggers import TriggerEngine, get_default_engine

logger = get_logger(__name__)

# External enrichment contracts
TranslateFn = Callable[[str, str], Awaitable[Any]]
DetectLanguageFn = Callable[[str, Optional[Sequence[str]]], Awaitable[Any]]
AnalyzeFn = Callable[[str, str], Awaitable[Any]]

# Target picked when auto-translation is switched on without an explicit target
_DEFAULT_TRANSLATION_TARGETS = {"pt": "en-US", "en": "pt-BR", "es": "pt-BR"}


def _read(response: Any, *names: str, default: Any = None) -> Any:
    """Read a field from a backend response given as an object or a mapping."""
    for name in names:
        if isinstance(response, dict):
            if name in response:
                return response[name]
        elif hasattr(response, name):
            return getattr(response, name)
    return default


# =============================================================================
# Session Context
# =============================================================================


class SessionContext:
    """Bounded conversation history owned by one session."""

    def __init__(self, max_segments: int = 20, language_window: int = 5):
        self.recent_texts = deque(maxlen=max_segments)
        self.recent_detections = deque(maxlen=language_window)

    def remember(self, text: str):
        self.recent_texts.append(text)

    def transcript(self) -> str:
        """Recent segment texts, oldest first, as the context string handed to analysis."""
        return "\n".join(self.recent_texts)

    def clear(self):
        self.recent_texts.clear()
        self.recent_detections.clear()


class LanguageTracker:
    """
    Rolling-majority language switching.

    A confident detection of a different enabled language is a vote; enough
    votes in the recent window, or one very confident detection, switch the
    current language and empty the window.
    """

    def __init__(self, config: SessionConfig, context: SessionContext):
        self.config = config
        self.context = context
        self.current_language = config.language
        self.enabled_languages = list(config.enabled_languages)
        self.detected_languages: List[str] = [config.language]

    def observe(self, language_code: str, confidence: float) -> Optional[str]:
        """Record a detection.

        Returns:
            Optional[str]: The new current language if this detection caused a switch
        """
        if language_code not in self.detected_languages:
            self.detected_languages.append(language_code)

        if confidence <= self.config.language_min_confidence:
            logger.debug(f"Low confidence ({confidence:.2f}) for {language_code}, keeping {self.current_language}")
            return None
        if language_code == self.current_language:
            return None
        if language_code not in self.enabled_languages:
            logger.debug(f"Detected {language_code} but it is disabled")
            return None

        window = self.context.recent_detections
        window.append(language_code)
        votes = sum(1 for code in window if code == language_code)
        logger.debug(f"Language vote for {language_code}: {votes}/{window.maxlen}")

        if votes >= self.config.language_switch_votes or confidence >= self.config.language_instant_confidence:
            window.clear()
            return self.switch(language_code)
        return None

    def switch(self, language_code: str) -> str:
        previous, self.current_language = self.current_language, language_code
        logger.info(f"🌐 Language switched: {previous} -> {language_code}")
        return language_code

    def set_enabled(self, language_code: str, enabled: bool) -> List[str]:
        """Enable or disable a language; at least one must stay enabled."""
        languages = [code for code in self.enabled_languages if code != language_code]
        if enabled:
            languages.append(language_code)
        if not languages:
            raise ValueError("At least one language must stay enabled")

        self.enabled_languages = languages
        if self.current_language not in languages:
            self.switch(languages[0])
        return list(languages)


# =============================================================================
# Transcription Session
# =============================================================================


class TranscriptionSession:
    """
    One recording session: reconciles the running transcript into segments and enriches them.

    Enrichment backends are plain awaitables:
    - translate(text, target_language) -> {translated_text, confidence}
    - detect_language(text, alternatives) -> {language_code, confidence}
    - analyze(transcript_context, question) -> {answer, confidence}
    Any of them may be omitted, which disables that enrichment kind.

    Enrichment tasks are scheduled on the running event loop. Called without one,
    `ingest` still creates segments and the enrichments are skipped.
    """

    def __init__(
        self,
        translate: Optional[TranslateFn] = None,
        detect_language: Optional[DetectLanguageFn] = None,
        analyze: Optional[AnalyzeFn] = None,
        config: Optional[UnifiedConfig] = None,
        triggers: Optional[TriggerEngine] = None,
        clock: Callable[[], float] = time.time,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.config = config or get_config()
        self._translate = translate
        self._detect_language = detect_language
        self._analyze = analyze
        self.triggers = triggers or get_default_engine()
        self._clock = clock
        self._monotonic = monotonic

        # Per-session copies so toggles never leak into other sessions
        self.features = self.config.features.model_copy()
        self.translation_target = self.config.session.translation_target

        self.store = SegmentStore()
        self.reconciler = TranscriptReconciler()
        self.accumulator = SpeechResultAccumulator()
        self.dispatcher = EnrichmentDispatcher(self.store, self.config.dispatch)
        self.guards: Dict[EnrichmentKind, DispatchGuard] = {kind: DispatchGuard(getattr(self.config.dispatch, kind.value), name=kind.value) for kind in EnrichmentKind}
        self.context = SessionContext(self.config.session.context_segments, self.config.session.language_window)
        self.languages = LanguageTracker(self.config.session, self.context)

        self.is_recording = False
        self._alternatives: List[str] = []

    # -------------------------------------------------------------------------
    # Recording lifecycle
    # -------------------------------------------------------------------------

    def start(self):
        """Begin a recording with fresh running transcript state."""
        if self.is_recording:
            return
        self.reconciler.reset()
        self.accumulator.reset()
        self.is_recording = True
        logger.info(f"Recording started ({self.languages.current_language})")

    def stop(self):
        """End the recording; segments stay, running transcript state is discarded."""
        self.is_recording = False
        self.reconciler.reset()
        self.accumulator.reset()
        self._alternatives = []
        logger.info(f"Recording stopped with {len(self.store)} segments")

    def clear(self) -> int:
        """Discard every segment and all running state. In-flight results for them are dropped on arrival."""
        dropped = self.store.clear()
        self.reconciler.reset()
        self.accumulator.reset()
        self.context.clear()
        for guard in self.guards.values():
            guard.reset()
        self._alternatives = []
        logger.info(f"Transcript cleared ({dropped} segments, {self.dispatcher.in_flight} enrichments still in flight)")
        return dropped

    # -------------------------------------------------------------------------
    # Transcript input
    # -------------------------------------------------------------------------

    @property
    def segments(self) -> Tuple[Segment, ...]:
        return self.store.segments

    @property
    def interim_text(self) -> str:
        return self.reconciler.interim_text

    def get(self, segment_id: str) -> Optional[Segment]:
        return self.store.get(segment_id)

    def full_text(self, include_interim: bool = False) -> str:
        parts = [segment.text for segment in self.store]
        if include_interim and self.interim_text:
            parts.append(self.interim_text)
        return " ".join(parts)

    def ingest(self, transcript: Union[str, TranscriptUpdate]) -> List[Segment]:
        """Reconcile the current running transcript and create segments for its new final text.

        Args:
            transcript: The whole running transcript, split or as a marked string

        Returns:
            List[Segment]: Segments created by this call, in order
        """
        result = self.reconciler.process(transcript)
        if not result.has_delta:
            return []

        created_at = self._clock()
        units = split_sentence_units(result.delta)
        segments = [Segment.create(sentence, created_at) for sentence, _ in units]
        self.store.extend(segments)

        for segment, (_, terminator) in zip(segments, units):
            context_text = self.context.transcript()
            self._auto_enrich(segment, context_text, segment.text + terminator)
            self.context.remember(segment.text)

        if segments:
            logger.debug(f"Created {len(segments)} segments from {len(result.delta)} new chars")
        return segments

    def ingest_results(self, result_index: int, results: Sequence[RecognitionResult]) -> List[Segment]:
        """Feed one raw recognizer callback through the accumulator, then `ingest`."""
        callback = self.accumulator.on_result(result_index, results)
        if callback.alternatives:
            self._alternatives = [alternative["transcript"] for alternative in callback.alternatives]
        return self.ingest(callback.update)

    # -------------------------------------------------------------------------
    # Automatic enrichment
    # -------------------------------------------------------------------------

    def _auto_enrich(self, segment: Segment, context_text: str, finalized_text: str):
        # Guards judge the sentence as finalized, before its period was dropped
        now_ms = self._monotonic() * 1000

        if self.features.auto_analysis and self._analyze is not None:
            report = self.triggers.evaluate(segment.text)
            if report.should_analyze:
                logger.debug(f"Analysis trigger on {segment.id}: {', '.join(report.matched_rules)}")
                if self.guards[EnrichmentKind.ANALYSIS].check(finalized_text, now_ms):
                    self._dispatch_analysis(segment, context_text)

        if self.features.auto_language_detection and self._detect_language is not None:
            if self.guards[EnrichmentKind.LANGUAGE].check(finalized_text, now_ms):
                self._dispatch_language(segment, list(self._alternatives))

        if self.features.auto_translation and self._translate is not None and self._needs_translation():
            if self.guards[EnrichmentKind.TRANSLATION].check(finalized_text, now_ms):
                self._dispatch_translation(segment)

    def _needs_translation(self) -> bool:
        target = self.translation_target
        return bool(target) and base_language(target) != base_language(self.languages.current_language)

    # -------------------------------------------------------------------------
    # Dispatch helpers
    # -------------------------------------------------------------------------

    def _dispatch_analysis(self, segment: Segment, context_text: str, force: bool = False) -> bool:
        analyze = self._analyze
        question = segment.text

        async def _call() -> AnalysisResult:
            response = await analyze(context_text, question)
            return AnalysisResult(answer=_read(response, "answer", default=""), confidence=float(_read(response, "confidence", default=0.0)))

        return self.dispatcher.dispatch(segment.id, EnrichmentKind.ANALYSIS, _call, force=force)

    def _dispatch_language(self, segment: Segment, alternatives: List[str], force: bool = False) -> bool:
        detect_language = self._detect_language
        text = segment.text

        async def _call() -> LanguageResult:
            response = await detect_language(text, alternatives or None)
            return LanguageResult(
                language_code=_read(response, "language_code", "languageCode", default=""),
                confidence=float(_read(response, "confidence", default=0.0)),
            )

        return self.dispatcher.dispatch(segment.id, EnrichmentKind.LANGUAGE, _call, force=force, on_done=self._on_language_detected)

    def _dispatch_translation(self, segment: Segment, force: bool = False, target: Optional[str] = None) -> bool:
        translate = self._translate
        text = segment.text
        target = target or self.translation_target

        async def _call() -> TranslationResult:
            response = await translate(text, target)
            return TranslationResult(
                text=_read(response, "translated_text", "translatedText", default=""),
                target_language=target,
                confidence=float(_read(response, "confidence", default=0.0)),
            )

        return self.dispatcher.dispatch(segment.id, EnrichmentKind.TRANSLATION, _call, force=force)

    def _on_language_detected(self, segment: Segment, enrichment: Enrichment):
        if enrichment.state != EnrichmentState.DONE or not self.is_recording:
            return
        self.languages.observe(enrichment.result.language_code, enrichment.result.confidence)

    def _context_before(self, segment_id: str) -> str:
        """Texts of the segments preceding `segment_id`, bounded like the automatic context."""
        earlier = []
        for segment in self.store:
            if segment.id == segment_id:
                break
            earlier.append(segment.text)
        return "\n".join(earlier[-self.config.session.context_segments :])

    # -------------------------------------------------------------------------
    # User-driven operations (bypass the dispatch guard)
    # -------------------------------------------------------------------------

    def redispatch(self, segment_id: str, kind: EnrichmentKind) -> bool:
        """Run an enrichment again for one segment, replacing any pending, done or failed result."""
        segment = self.store.get(segment_id)
        if segment is None:
            return False

        if kind == EnrichmentKind.ANALYSIS and self._analyze is not None:
            return self._dispatch_analysis(segment, self._context_before(segment_id), force=True)
        if kind == EnrichmentKind.LANGUAGE and self._detect_language is not None:
            return self._dispatch_language(segment, [], force=True)
        if kind == EnrichmentKind.TRANSLATION and self._translate is not None:
            return self._dispatch_translation(segment, force=True)

        logger.warning(f"No backend configured for {kind.value}")
        return False

    def click_translate(self, segment_id: str) -> bool:
        """Toggle a finished translation, or start one. Returns True if a translation was dispatched."""
        return self._click(segment_id, EnrichmentKind.TRANSLATION)

    def click_analyze(self, segment_id: str) -> bool:
        """Toggle a finished answer, or ask for one. Returns True if an analysis was dispatched."""
        return self._click(segment_id, EnrichmentKind.ANALYSIS)

    def _click(self, segment_id: str, kind: EnrichmentKind) -> bool:
        segment = self.store.get(segment_id)
        if segment is None:
            return False

        enrichment = segment.enrichment(kind)
        if enrichment is not None and enrichment.state == EnrichmentState.DONE:
            self.toggle_visibility(segment_id, kind)
            return False
        if enrichment is not None and enrichment.state == EnrichmentState.PENDING:
            return False

        if kind == EnrichmentKind.TRANSLATION:
            if self._translate is None or not self.translation_target:
                logger.warning("Click-to-translate needs a translation backend and a target language")
                return False
            dispatched = self._dispatch_translation(segment)
        else:
            if self._analyze is None:
                logger.warning("Click-to-analyze needs an analysis backend")
                return False
            dispatched = self._dispatch_analysis(segment, self._context_before(segment_id))

        if dispatched:
            self.store.update(segment_id, lambda s: s.with_visibility(kind, True))
        return dispatched

    def toggle_visibility(self, segment_id: str, kind: EnrichmentKind) -> bool:
        return self.store.update(segment_id, lambda s: s.with_visibility(kind, not s.is_visible(kind)))

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    def set_translation_target(self, language_code: str):
        """Change the target for future translations; existing translations are kept."""
        if not language_code or not language_code.strip():
            raise ValueError("Translation target cannot be empty")
        self.translation_target = language_code.strip()
        logger.info(f"Translation target set to {self.translation_target}")

    def set_auto_translation(self, enabled: bool, target: Optional[str] = None):
        """Switch auto-translation, picking a target opposite to the current language when none is given."""
        self.features.auto_translation = enabled
        if enabled:
            fallback = _DEFAULT_TRANSLATION_TARGETS.get(base_language(self.languages.current_language), "en-US")
            self.set_translation_target(target or fallback)
        logger.info(f"Auto-translation {'enabled' if enabled else 'disabled'}")

    # -------------------------------------------------------------------------
    # Async housekeeping
    # -------------------------------------------------------------------------

    async def wait_idle(self):
        await self.dispatcher.wait_idle()

    async def aclose(self):
        self.stop()
        await self.dispatcher.cancel_all()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "segments": len(self.store),
            "is_recording": self.is_recording,
            "current_language": self.languages.current_language,
            "detected_languages": list(self.languages.detected_languages),
            "dispatch": self.dispatcher.stats.to_dict(),
        }


def create_session(
    config: Optional[UnifiedConfig] = None,
    translate: Optional[TranslateFn] = None,
    detect_language: Optional[DetectLanguageFn] = None,
    analyze: Optional[AnalyzeFn] = None,
    use_llm: bool = True,
) -> TranscriptionSession:
    """Build a session, filling missing backends with the LLM implementations.

    Args:
        config: Configuration, defaults to the global one
        translate: Translation backend
        detect_language: Language detection backend
        analyze: Question answering backend
        use_llm: Create LLM backends for the ones not given; False leaves them disabled

    Returns:
        TranscriptionSession: A new, independent session
    """
    config = config or get_config()

    if use_llm:
        from .llm import LLMAnalyzer, LLMLanguageDetector, LLMTranslator

        if translate is None:
            translate = LLMTranslator(config.llm).translate
        if detect_language is None:
            detect_language = LLMLanguageDetector(config.session.enabled_languages, config.llm).detect_language
        if analyze is None:
            analyze = LLMAnalyzer(config.llm).analyze

    return TranscriptionSession(translate=translate, detect_language=detect_language, analyze=analyze, config=config)
