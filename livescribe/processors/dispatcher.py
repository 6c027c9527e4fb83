import asyncio
import time
import uuid
from typing import Awaitable, Callable, Dict, Optional, Set

from ..config import DispatchConfig
from ..segments import Enrichment, EnrichmentKind, EnrichmentResult, EnrichmentState, Segment, SegmentStore
from .base_processor import BaseProcessor
from .stats import DispatchStats

EnrichmentCall = Callable[[], Awaitable[EnrichmentResult]]
CompletionCallback = Callable[[Segment, Enrichment], None]

_KIND_LABELS: Dict[EnrichmentKind, str] = {
    EnrichmentKind.TRANSLATION: "Translation",
    EnrichmentKind.LANGUAGE: "Language detection",
    EnrichmentKind.ANALYSIS: "Analysis",
}


class EnrichmentDispatcher(BaseProcessor):
    """
    Fire-and-forget enrichment of segments with results merged back by segment id.

    `dispatch` marks the segment `pending` synchronously and schedules the call
    on the running event loop. Whenever the call finishes, its outcome is applied
    to whatever segment currently carries the id and the dispatch's request id:
    - a cleared segment makes the merge a no-op
    - a newer forced dispatch supersedes the older one's result
    - failures and timeouts become `error` states and are never retried here
    """

    def __init__(self, store: SegmentStore, config: Optional[DispatchConfig] = None, stats: Optional[DispatchStats] = None):
        super().__init__(config or DispatchConfig())
        self.store = store
        self.stats = stats or DispatchStats()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def timeout(self) -> float:
        return self.config.timeout

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def is_pending(self, segment_id: str, kind: EnrichmentKind) -> bool:
        segment = self.store.get(segment_id)
        if segment is None:
            return False
        enrichment = segment.enrichment(kind)
        return enrichment is not None and enrichment.state == EnrichmentState.PENDING

    def dispatch(
        self,
        segment_id: str,
        kind: EnrichmentKind,
        call: EnrichmentCall,
        force: bool = False,
        on_done: Optional[CompletionCallback] = None,
    ) -> bool:
        """Start an enrichment for a segment unless it already has one.

        Args:
            segment_id: Segment to enrich
            kind: Enrichment kind, selects which field of the segment is updated
            call: Zero-argument coroutine factory performing the backend call
            force: Dispatch even if a result is pending or done (explicit re-analysis)
            on_done: Called with the updated segment and its settled enrichment

        Returns:
            bool: True if a call was scheduled; False without a running event loop
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.stats[kind].skipped += 1
            self.logger.warning(f"Not dispatching {kind.value} for {segment_id}: no running event loop")
            return False

        segment = self.store.get(segment_id)
        if segment is None:
            self.logger.debug(f"Not dispatching {kind.value}: segment {segment_id} is gone")
            return False

        current = segment.enrichment(kind)
        if current is not None and current.state != EnrichmentState.ERROR and not force:
            self.stats[kind].skipped += 1
            self.logger.debug(f"Skipping {kind.value} for {segment_id}: already {current.state.value}")
            return False

        request_id = uuid.uuid4().hex
        self.store.update(segment_id, lambda s: s.with_enrichment(kind, Enrichment.pending(request_id)))
        self.stats[kind].dispatched += 1

        task = loop.create_task(self._run(segment_id, kind, request_id, call, on_done), name=f"{kind.value}-{segment_id[:8]}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        self.logger.debug(f"Dispatched {kind.value} for {segment_id} (request {request_id[:8]}, force={force})")
        return True

    async def _run(self, segment_id: str, kind: EnrichmentKind, request_id: str, call: EnrichmentCall, on_done: Optional[CompletionCallback]):
        stats = self.stats[kind]
        label = _KIND_LABELS[kind]
        start_time = time.time()

        try:
            result = await asyncio.wait_for(call(), timeout=self.timeout)
        except asyncio.TimeoutError:
            self.logger.warning(f"{label} for {segment_id} timed out after {self.timeout:.1f}s")
            if self._settle(segment_id, kind, request_id, lambda e: e.failed(f"{label} timed out"), on_done):
                stats.timed_out += 1
            else:
                stats.dropped += 1
            return
        except asyncio.CancelledError:
            if self._settle(segment_id, kind, request_id, lambda e: e.failed(f"{label} cancelled"), on_done):
                stats.failed += 1
            else:
                stats.dropped += 1
            raise
        except Exception as e:
            self.logger.warning(f"{label} for {segment_id} failed: {e}")
            message = f"{label} failed: {e}" if str(e) else f"{label} failed"
            if self._settle(segment_id, kind, request_id, lambda en: en.failed(message), on_done):
                stats.failed += 1
            else:
                stats.dropped += 1
            return

        if self._settle(segment_id, kind, request_id, lambda e: e.done(result), on_done):
            stats.record_completion(time.time() - start_time)
        else:
            stats.dropped += 1

    def _settle(
        self,
        segment_id: str,
        kind: EnrichmentKind,
        request_id: str,
        change: Callable[[Enrichment], Enrichment],
        on_done: Optional[CompletionCallback],
    ) -> bool:
        """Apply a settled outcome if the dispatch still owns the segment's state."""
        applied = []

        def _apply(segment: Segment) -> Segment:
            current = segment.enrichment(kind)
            if current is None or current.request_id != request_id:
                return segment
            updated = segment.with_enrichment(kind, change(current))
            applied.append(updated)
            return updated

        if not self.store.update(segment_id, _apply):
            self.logger.debug(f"Dropping {kind.value} result for cleared segment {segment_id}")
            return False
        if not applied:
            self.logger.debug(f"Dropping superseded {kind.value} result for {segment_id} (request {request_id[:8]})")
            return False

        if on_done is not None:
            segment = applied[0]
            try:
                on_done(segment, segment.enrichment(kind))
            except Exception as e:
                self.logger.error(f"Error in {kind.value} completion callback: {e}")
        return True

    async def wait_idle(self):
        """Wait until every scheduled enrichment, including ones scheduled meanwhile, has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self):
        """Cancel outstanding enrichments; used when the owning session shuts down."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            self.logger.info(f"Cancelled {len(tasks)} in-flight enrichments")
