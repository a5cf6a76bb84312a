"""
Unit tests for sublingo/state.py.

This module tests:
- AppState derived properties
- TranslationStore actions and listener notification
- Request generations and stale fragment handling
"""

from dataclasses import FrozenInstanceError

import pytest

from sublingo.models import SubtitleFormat
from sublingo.prompt_builder import StyleOptions, find_language
from sublingo.state import AppState


class TestAppState:
    """Test derived values of the state."""

    def test_defaults(self):
        state = AppState()
        assert state.source_language.code == "en"
        assert state.target_language.code == "th"
        assert state.output_format is SubtitleFormat.VTT
        assert state.raw_vtt == ""
        assert state.is_loading is False
        assert state.error is None
        assert state.canonical_vtt == ""
        assert state.displayed_content == ""

    def test_displayed_content_follows_format(self):
        state = AppState(raw_vtt="1\n00:00:01.000 --> 00:00:02.000\nHello", output_format=SubtitleFormat.SRT)
        assert state.canonical_vtt == "WEBVTT\n\n00:00:01.000 --> 00:00:02.000\nHello"
        assert state.displayed_content == "1\n00:00:01,000 --> 00:00:02,000\nHello"

    def test_state_is_immutable(self):
        state = AppState()
        with pytest.raises(FrozenInstanceError):
            state.raw_vtt = "changed"


class TestSubscribe:
    """Test listener registration."""

    def test_listener_receives_new_state(self, store):
        seen = []
        store.subscribe(seen.append)
        store.format_changed("srt")
        assert len(seen) == 1
        assert seen[0].output_format is SubtitleFormat.SRT
        assert seen[0] is store.state

    def test_unsubscribe(self, store):
        seen = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()
        store.format_changed("txt")
        assert seen == []

    def test_unsubscribe_twice_is_harmless(self, store):
        unsubscribe = store.subscribe(lambda state: None)
        unsubscribe()
        unsubscribe()


class TestRequestLifecycle:
    """Test the translate/fragment/finish cycle."""

    def test_translate_requested_resets_output(self, store):
        store.file_loaded("a.vtt", "WEBVTT")
        request_id = store.translate_requested()
        store.fragment_received(request_id, "WEBVTT\n\n")
        new_id = store.translate_requested()
        assert new_id == request_id + 1
        assert store.state.raw_vtt == ""
        assert store.state.is_loading is True
        assert store.state.error is None

    def test_fragments_accumulate(self, store):
        request_id = store.translate_requested()
        assert store.fragment_received(request_id, "WEBVTT\n\n00:00:01.000")
        assert store.fragment_received(request_id, " --> 00:00:02.000\nHi")
        assert store.state.raw_vtt == "WEBVTT\n\n00:00:01.000 --> 00:00:02.000\nHi"

    def test_empty_fragment_does_not_notify(self, store):
        request_id = store.translate_requested()
        seen = []
        store.subscribe(seen.append)
        assert store.fragment_received(request_id, "") is True
        assert seen == []

    def test_finished_clears_loading(self, store):
        request_id = store.translate_requested()
        store.translation_finished(request_id)
        assert store.state.is_loading is False

    def test_failure_keeps_partial_text(self, store):
        request_id = store.translate_requested()
        store.fragment_received(request_id, "WEBVTT\n\n00:00:01.000 --> 00:00:02.000\nHi")
        store.translation_failed(request_id, "Something broke", needs_credential=True)
        state = store.state
        assert state.error == "Something broke"
        assert state.needs_credential is True
        assert state.is_loading is False
        assert "Hi" in state.raw_vtt

    def test_new_request_clears_credential_flag(self, store):
        request_id = store.translate_requested()
        store.translation_failed(request_id, "bad key", needs_credential=True)
        store.translate_requested()
        assert store.state.needs_credential is False


class TestStaleRequests:
    """Test that abandoned requests cannot change the state."""

    def test_fragment_after_new_file_is_ignored(self, store):
        request_id = store.translate_requested()
        store.fragment_received(request_id, "WEBVTT\n\n")
        store.file_loaded("other.srt", "new content")
        assert store.fragment_received(request_id, "late text") is False
        assert store.state.raw_vtt == ""
        assert store.state.source_name == "other.srt"

    def test_fragment_after_cancel_is_ignored(self, store):
        request_id = store.translate_requested()
        store.fragment_received(request_id, "kept")
        store.cancel()
        assert store.fragment_received(request_id, " dropped") is False
        assert store.state.raw_vtt == "kept"
        assert store.state.is_loading is False

    def test_stale_failure_is_ignored(self, store):
        old_id = store.translate_requested()
        store.translate_requested()
        store.translation_failed(old_id, "old failure")
        assert store.state.error is None
        assert store.state.is_loading is True

    def test_stale_finish_is_ignored(self, store):
        old_id = store.translate_requested()
        store.translate_requested()
        store.translation_finished(old_id)
        assert store.state.is_loading is True

    def test_is_current(self, store):
        request_id = store.translate_requested()
        assert store.is_current(request_id)
        assert not store.is_current(request_id - 1)


class TestSettings:
    """Test format, language, style and input actions."""

    def test_format_changed_accepts_names(self, store):
        store.format_changed("TXT")
        assert store.state.output_format is SubtitleFormat.TXT

    def test_format_changed_rejects_unknown(self, store):
        with pytest.raises(ValueError):
            store.format_changed("ass")

    def test_format_change_keeps_translation(self, store, sample_vtt, sample_srt):
        request_id = store.translate_requested()
        store.fragment_received(request_id, sample_vtt)
        store.format_changed(SubtitleFormat.SRT)
        assert store.state.displayed_content == sample_srt
        assert store.state.raw_vtt == sample_vtt

    def test_languages_changed(self, store):
        store.languages_changed(find_language("ja"), find_language("en"))
        assert store.state.source_language.name == "Japanese"
        assert store.state.target_language.name == "English"

    def test_style_changed(self, store):
        style = StyleOptions(liveliness="Vivid")
        store.style_changed(style)
        assert store.state.style is style

    def test_file_failed_sets_error(self, store):
        store.file_failed("Failed to read the file.")
        assert store.state.error == "Failed to read the file."

    def test_file_loaded_clears_error(self, store):
        store.input_rejected("missing input")
        store.file_loaded("a.srt", "content")
        assert store.state.error is None
        assert store.state.source_content == "content"
