"""
tests/test_segments.py
======================
Segment model, the immutable-update store and the dispatch guard.

All tests are OFFLINE and synchronous.
"""

import os
import sys
import unittest
from unittest.mock import MagicMock

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from livescribe.config import GuardConfig
from livescribe.processors import DispatchGuard, should_dispatch
from livescribe.processors.guard import is_significant
from livescribe.segments import (
    Enrichment,
    EnrichmentKind,
    EnrichmentState,
    Segment,
    SegmentStore,
    TranslationResult,
)


class TestSegment(unittest.TestCase):
    def test_create_assigns_unique_ids(self):
        first = Segment.create("Hello", created_at=0.0)
        second = Segment.create("Hello", created_at=0.0)
        self.assertNotEqual(first.id, second.id)
        self.assertIsNone(first.translation)
        self.assertFalse(first.show_translation)

    def test_enrichment_updates_return_new_segment(self):
        segment = Segment.create("Hello")
        pending = Enrichment.pending("req-1")
        updated = segment.with_enrichment(EnrichmentKind.TRANSLATION, pending)

        self.assertIsNone(segment.translation)
        self.assertEqual(updated.enrichment(EnrichmentKind.TRANSLATION), pending)
        self.assertEqual(updated.text, segment.text)
        self.assertEqual(updated.id, segment.id)

    def test_enrichment_transitions(self):
        pending = Enrichment.pending("req-1")
        self.assertFalse(pending.is_settled)

        done = pending.done(TranslationResult("Olá", "pt-BR", 0.9))
        self.assertEqual(done.state, EnrichmentState.DONE)
        self.assertEqual(done.request_id, "req-1")
        self.assertTrue(done.is_settled)

        failed = pending.failed("Translation timed out")
        self.assertEqual(failed.state, EnrichmentState.ERROR)
        self.assertEqual(failed.error, "Translation timed out")

    def test_visibility(self):
        segment = Segment.create("How are you?")
        shown = segment.with_visibility(EnrichmentKind.ANALYSIS, True)
        self.assertTrue(shown.is_visible(EnrichmentKind.ANALYSIS))
        self.assertFalse(shown.is_visible(EnrichmentKind.TRANSLATION))

        with self.assertRaises(ValueError):
            segment.with_visibility(EnrichmentKind.LANGUAGE, True)

    def test_to_dict(self):
        segment = Segment.create("Hello", created_at=0.0)
        segment = segment.with_enrichment(EnrichmentKind.TRANSLATION, Enrichment.pending("r").done(TranslationResult("Olá", "pt-BR", 0.9)))
        rendered = segment.to_dict()

        self.assertEqual(rendered["text"], "Hello")
        self.assertEqual(rendered["translation"]["state"], "done")
        self.assertEqual(rendered["translation"]["text"], "Olá")
        self.assertEqual(rendered["translation"]["target_language"], "pt-BR")
        self.assertIsNone(rendered["analysis"])
        self.assertRegex(rendered["timestamp"], r"^\d{2}:\d{2}:\d{2}$")


class TestSegmentStore(unittest.TestCase):
    def setUp(self):
        self.store = SegmentStore()
        self.first = Segment.create("First")
        self.second = Segment.create("Second")
        self.store.extend([self.first, self.second])

    def test_keeps_insertion_order(self):
        third = Segment.create("Third")
        self.store.extend([third])
        self.assertEqual([s.text for s in self.store], ["First", "Second", "Third"])
        self.assertEqual(len(self.store), 3)

    def test_update_replaces_whole_collection(self):
        snapshot = self.store.segments
        self.store.update(self.first.id, lambda s: s.with_visibility(EnrichmentKind.TRANSLATION, True))

        self.assertIsNot(self.store.segments, snapshot)
        self.assertFalse(snapshot[0].show_translation)
        self.assertTrue(self.store.get(self.first.id).show_translation)

    def test_update_of_missing_id_is_noop(self):
        snapshot = self.store.segments
        self.assertFalse(self.store.update("missing", lambda s: s.with_visibility(EnrichmentKind.TRANSLATION, True)))
        self.assertIs(self.store.segments, snapshot)

    def test_text_cannot_change(self):
        with self.assertRaises(ValueError):
            self.store.update(self.first.id, lambda s: Segment(s.id, "Edited", s.created_at))

    def test_listeners_receive_snapshots(self):
        listener = MagicMock()
        self.store.add_listener(listener)
        self.store.clear()
        listener.assert_called_once_with(())

    def test_failing_listener_does_not_break_updates(self):
        self.store.add_listener(MagicMock(side_effect=RuntimeError("render failed")))
        self.assertEqual(self.store.clear(), 2)
        self.assertEqual(len(self.store), 0)


# ===================================================================
# Debounce/dedup guard
# ===================================================================


class TestShouldDispatch(unittest.TestCase):
    LONG = "This is a sufficiently long sentence"

    def test_long_text_passes(self):
        self.assertTrue(should_dispatch(self.LONG, None, None, 0))

    def test_exact_repeat_is_rejected(self):
        self.assertFalse(should_dispatch(self.LONG, self.LONG, 0, 60000))

    def test_cooldown(self):
        self.assertFalse(should_dispatch(self.LONG, "something else", 1000, 2500))
        self.assertTrue(should_dispatch(self.LONG, "something else", 1000, 3000))

    def test_short_text_needs_words_and_punctuation(self):
        self.assertTrue(should_dispatch("Hi there.", None, None, 0))
        self.assertFalse(should_dispatch("Hi there", None, None, 0))
        self.assertFalse(should_dispatch("Okay.", None, None, 0))

    def test_empty_text(self):
        self.assertFalse(should_dispatch("   ", None, None, 0))

    def test_custom_thresholds(self):
        config = GuardConfig(cooldown_ms=0, min_chars=5, min_words=1)
        self.assertTrue(should_dispatch("Hello", "Bye", 100, 100, config))
        self.assertTrue(is_significant("Yes!", 5, 1))

    def test_repeats_allowed_after_cooldown_when_configured(self):
        config = GuardConfig(cooldown_ms=0, min_chars=6, repeats_within_cooldown_only=True)
        self.assertTrue(should_dispatch("Sim, claro.", "Sim, claro.", 0, 0, config))

        windowed = GuardConfig(cooldown_ms=2000, min_chars=6, repeats_within_cooldown_only=True)
        self.assertFalse(should_dispatch("Sim, claro.", "Sim, claro.", 0, 1000, windowed))
        self.assertTrue(should_dispatch("Sim, claro.", "Sim, claro.", 0, 2000, windowed))


class TestDispatchGuard(unittest.TestCase):
    def test_records_successful_checks(self):
        guard = DispatchGuard(GuardConfig(cooldown_ms=2000), name="analysis")
        text = "What is the capital of France?"

        self.assertTrue(guard.check(text, 0))
        self.assertEqual(guard.last_text, text)
        self.assertFalse(guard.check(text, 10000))
        self.assertFalse(guard.check("How far away is the moon from us?", 1000))
        self.assertTrue(guard.check("How far away is the moon from us?", 2500))

    def test_rejected_checks_are_not_recorded(self):
        guard = DispatchGuard()
        self.assertFalse(guard.check("Hm", 0))
        self.assertIsNone(guard.last_at_ms)

    def test_reset(self):
        guard = DispatchGuard()
        guard.check("This is a sufficiently long sentence", 0)
        guard.reset()
        self.assertTrue(guard.check("This is a sufficiently long sentence", 1))


if __name__ == "__main__":
    unittest.main()
