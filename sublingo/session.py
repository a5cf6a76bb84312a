"""Orchestrates a subtitle translation from source file to rendered export."""

import logging
import os
import time
from typing import Optional

from .converter import count_dropped_blocks, parse_cues
from .exceptions import (
    FileSystemError,
    FormattingError,
    InvalidCredentialError,
    ProviderAccessError,
    TranslationError,
)
from .models import ExportPayload
from .presenter import export as export_payload
from .presenter import write_export
from .prompt_builder import build_prompt
from .state import AppState, TranslationStore
from .translator import TranslationProvider
from .utils import read_text_file

logger = logging.getLogger(__name__)

MISSING_INPUT_MESSAGE = "Please select a file and both source and target languages."
FILE_READ_MESSAGE = "Failed to read the file."
INVALID_KEY_MESSAGE = "The provided API Key is invalid. Please check your selection."
ACCESS_ERROR_MESSAGE = "API Key error. Please select a valid API key to continue."
GENERIC_ERROR_MESSAGE = "An error occurred during translation. Please check the logs for details."


class TranslationSession:
    """
    Manages one source file and its streamed translation.

    The session reads the source, asks the provider for a translation and
    feeds every fragment into the store. Rendering and export always work on
    the sanitized text currently held in the store, so they are available
    during streaming, after completion and after a failure.
    """

    def __init__(self, store: TranslationStore, provider: TranslationProvider):
        """
        Initializes the TranslationSession.

        Args:
            store: The state container updated by this session.
            provider: The translation service to stream from.
        """
        self.store = store
        self.provider = provider

    @property
    def state(self) -> AppState:
        return self.store.state

    def load_file(self, path: str) -> AppState:
        """
        Reads a subtitle file and makes it the translation source.

        Raises:
            FileSystemError: If the file cannot be read as UTF-8 text.
        """
        logger.info(f"Loading source subtitles from: {path}")
        try:
            content = read_text_file(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Could not read {path}: {e}", exc_info=True)
            self.store.file_failed(FILE_READ_MESSAGE)
            raise FileSystemError(f"{FILE_READ_MESSAGE} ({path}: {e})") from e
        return self.store.file_loaded(os.path.basename(path), content)

    def translate(self) -> AppState:
        """
        Streams a translation of the loaded source into the store.

        Provider failures are recorded in the state as a user-visible message
        instead of being raised; whatever text arrived before the failure is
        kept.

        Returns:
            The state after the stream ended, failed or was abandoned.
        """
        state = self.store.state
        if not state.source_content or not state.source_language or not state.target_language:
            logger.warning("Translation requested without source content or languages.")
            return self.store.input_rejected(MISSING_INPUT_MESSAGE)

        prompt = build_prompt(state.source_content, state.source_language, state.target_language, state.style)
        request_id = self.store.translate_requested()
        logger.info(
            f"--- Translating {state.source_name or 'subtitles'} "
            f"({state.source_language.name} -> {state.target_language.name}), request {request_id} ---"
        )
        start_time = time.time()
        fragments = 0

        stream = self.provider.stream(prompt)
        try:
            for fragment in stream:
                if not self.store.fragment_received(request_id, fragment):
                    logger.info(f"Request {request_id} was superseded; abandoning its stream.")
                    return self.store.state
                fragments += 1
        except InvalidCredentialError as e:
            logger.error(f"Translation failed, invalid credential: {e}")
            return self.store.translation_failed(request_id, INVALID_KEY_MESSAGE, needs_credential=True)
        except ProviderAccessError as e:
            logger.error(f"Translation failed, model not found or unauthorized: {e}")
            return self.store.translation_failed(request_id, ACCESS_ERROR_MESSAGE, needs_credential=True)
        except TranslationError as e:
            logger.error(f"Translation failed: {e}")
            return self.store.translation_failed(request_id, GENERIC_ERROR_MESSAGE)
        except Exception as e:
            logger.critical(f"An unexpected error occurred while streaming the translation: {e}", exc_info=True)
            return self.store.translation_failed(request_id, GENERIC_ERROR_MESSAGE)
        finally:
            close = getattr(stream, "close", None)
            if close is not None:
                close()

        final_state = self.store.translation_finished(request_id)
        cue_count = len(parse_cues(final_state.canonical_vtt))
        dropped = count_dropped_blocks(final_state.raw_vtt)
        logger.info(
            f"Translation completed in {time.time() - start_time:.2f} seconds: "
            f"{fragments} fragments, {cue_count} cues."
        )
        if dropped:
            logger.warning(f"{dropped} block(s) of the model output had no timing line and were dropped.")
        return final_state

    def cancel(self) -> None:
        """Abandons the running translation; late fragments are ignored."""
        logger.info(f"Cancelling request {self.store.state.request_id}")
        self.store.cancel()

    def rendered(self) -> str:
        """The translation in the currently selected output format."""
        return self.store.state.displayed_content

    def export(self, fmt=None, strict: bool = False) -> ExportPayload:
        """
        Prepares a download of the current translation.

        Args:
            fmt: Output format; defaults to the selected one.
            strict: Refuse to export when blocks of the model output were dropped.

        Raises:
            FormattingError: If there is nothing to export, or in strict mode
                             when blocks were dropped.
        """
        state = self.store.state
        if not state.raw_vtt:
            raise FormattingError("There is no translation to export yet.")
        if strict:
            dropped = count_dropped_blocks(state.raw_vtt)
            if dropped:
                raise FormattingError(f"{dropped} block(s) without a timing line would be dropped from the export.")
        return export_payload(state.canonical_vtt, fmt or state.output_format, state.source_name)

    def save(self, output_dir: str, fmt=None, strict: bool = False) -> str:
        """Writes the export into a directory and returns the file path."""
        return write_export(self.export(fmt, strict=strict), output_dir)

    def close(self) -> None:
        self.provider.close()
