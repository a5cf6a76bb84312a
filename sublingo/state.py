"""
Application state for one translation session.

A single immutable AppState is held by TranslationStore. Every change goes
through one of the store's action methods, which builds a new state and
notifies the subscribed listeners (the console renderer in the CLI).
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional

from .models import SubtitleFormat
from .presenter import render, sanitize
from .prompt_builder import (
    DEFAULT_SOURCE_LANGUAGE,
    DEFAULT_TARGET_LANGUAGE,
    LanguageOption,
    StyleOptions,
    find_language,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppState:
    source_name: Optional[str] = None
    source_content: str = ''
    source_language: LanguageOption = field(default_factory=lambda: find_language(DEFAULT_SOURCE_LANGUAGE))
    target_language: LanguageOption = field(default_factory=lambda: find_language(DEFAULT_TARGET_LANGUAGE))
    style: StyleOptions = field(default_factory=StyleOptions)
    raw_vtt: str = ''
    output_format: SubtitleFormat = SubtitleFormat.VTT
    is_loading: bool = False
    error: Optional[str] = None
    needs_credential: bool = False
    request_id: int = 0

    @property
    def canonical_vtt(self) -> str:
        """The accumulated model output, sanitized into strict VTT."""
        return sanitize(self.raw_vtt)

    @property
    def displayed_content(self) -> str:
        """Text shown for the selected output format."""
        return render(self.canonical_vtt, self.output_format)


Listener = Callable[[AppState], None]


class TranslationStore:
    """Holds the AppState and applies discrete actions to it."""

    def __init__(self, initial: Optional[AppState] = None):
        self._state = initial or AppState()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> AppState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Registers a listener called with the new state after every change.

        Returns:
            A function that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, **changes) -> AppState:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    def is_current(self, request_id: int) -> bool:
        return request_id == self._state.request_id

    # --- Actions ---

    def file_loaded(self, name: Optional[str], content: str) -> AppState:
        """A new source file replaces the old one and abandons any running request."""
        logger.debug(f"Source file loaded: {name} ({len(content)} chars)")
        return self._set(
            source_name=name,
            source_content=content,
            raw_vtt='',
            error=None,
            is_loading=False,
            request_id=self._state.request_id + 1
        )

    def file_failed(self, message: str) -> AppState:
        return self._set(error=message)

    def translate_requested(self) -> int:
        """
        Starts a new request generation.

        Returns:
            The id fragments of this request must be dispatched with.
        """
        new_id = self._state.request_id + 1
        self._set(request_id=new_id, raw_vtt='', error=None, needs_credential=False, is_loading=True)
        return new_id

    def cancel(self) -> AppState:
        """Abandons the running request, keeping the text received so far."""
        return self._set(request_id=self._state.request_id + 1, is_loading=False)

    def fragment_received(self, request_id: int, fragment: str) -> bool:
        """
        Appends a streamed fragment.

        Returns:
            False when the fragment belongs to an abandoned request and was
            ignored.
        """
        if not self.is_current(request_id):
            logger.debug(f"Ignoring fragment for stale request {request_id} (current: {self._state.request_id})")
            return False
        if fragment:
            self._set(raw_vtt=self._state.raw_vtt + fragment)
        return True

    def translation_finished(self, request_id: int) -> AppState:
        if self.is_current(request_id):
            return self._set(is_loading=False)
        return self._state

    def translation_failed(self, request_id: int, message: str, needs_credential: bool = False) -> AppState:
        """Records a user-visible error. Text received before the failure is kept."""
        if not self.is_current(request_id):
            return self._state
        return self._set(is_loading=False, error=message, needs_credential=needs_credential)

    def input_rejected(self, message: str) -> AppState:
        return self._set(error=message)

    def format_changed(self, fmt) -> AppState:
        return self._set(output_format=SubtitleFormat.parse(fmt))

    def languages_changed(self, source: LanguageOption, target: LanguageOption) -> AppState:
        return self._set(source_language=source, target_language=target)

    def style_changed(self, style: StyleOptions) -> AppState:
        return self._set(style=style)
