"""
Pytest configuration and shared fixtures for test suite.

This module provides:
- Sample VTT/SRT documents
- A scripted translation provider
- A store/session pair wired to that provider
- Root logger isolation for entry point tests
"""

import logging

import pytest

from sublingo.exceptions import TranslationError
from sublingo.session import TranslationSession
from sublingo.state import TranslationStore
from sublingo.translator import TranslationProvider


SAMPLE_VTT = (
    "WEBVTT\n"
    "\n"
    "00:00:01.000 --> 00:00:02.000\n"
    "Hello\n"
    "\n"
    "00:00:03.000 --> 00:00:04.000\n"
    "- Hi\n"
    "- Bye"
)

SAMPLE_SRT = (
    "1\n"
    "00:00:01,000 --> 00:00:02,000\n"
    "Hello\n"
    "\n"
    "2\n"
    "00:00:03,000 --> 00:00:04,000\n"
    "- Hi\n"
    "- Bye"
)


class ScriptedProvider(TranslationProvider):
    """Yields preset fragments, optionally raising after them."""

    def __init__(self, fragments=None, error=None, on_fragment=None):
        self.fragments = list(fragments or [])
        self.error = error
        self.on_fragment = on_fragment
        self.prompts = []
        self.closed = False

    def stream(self, prompt):
        self.prompts.append(prompt)
        for i, fragment in enumerate(self.fragments):
            if self.on_fragment:
                self.on_fragment(i)
            yield fragment
        if self.error is not None:
            raise self.error

    def close(self):
        self.closed = True


@pytest.fixture
def sample_vtt():
    return SAMPLE_VTT


@pytest.fixture
def sample_srt():
    return SAMPLE_SRT


@pytest.fixture
def store():
    return TranslationStore()


@pytest.fixture
def make_provider():
    return ScriptedProvider


@pytest.fixture
def make_session(store, make_provider):
    """Build a session around a ScriptedProvider with the given script."""
    def _make(fragments=None, error=None, on_fragment=None):
        provider = make_provider(fragments, error, on_fragment)
        return TranslationSession(store, provider), provider
    return _make


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "movie.en.srt"
    path.write_text(SAMPLE_SRT, encoding="utf-8")
    return path


@pytest.fixture
def generic_error():
    return TranslationError("boom")


@pytest.fixture
def isolated_logging():
    """Restore the root logger after code that calls setup_logging()."""
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in saved_handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(saved_level)
