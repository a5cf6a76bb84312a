#!/usr/bin/env python3
"""
SubLingo Batch Processing Entry Point

Translates all subtitle files (.vtt, .srt, .txt) in a specified directory, ordered
by size, writing the results to a per-language subfolder.
"""

import argparse
import logging
import os
import sys
import time
from typing import List, Tuple

# Progress bar library
from tqdm import tqdm

from sublingo.cli import build_translator
from sublingo.config_loader import ConfigLoader
from sublingo.credentials import CredentialStore
from sublingo.exceptions import SubLingoError, ConfigurationError, FileSystemError
from sublingo.log_setup import LOG_LEVEL_NAMES, parse_log_level, setup_logging
from sublingo.presenter import base_name
from sublingo.prompt_builder import LANGUAGES, StyleOptions, find_language
from sublingo.session import TranslationSession
from sublingo.state import TranslationStore
from sublingo.utils import ensure_dir_exists

# Initialize logger for this script
logger = logging.getLogger(__name__)

SUBTITLE_EXTENSIONS = ('.vtt', '.srt', '.txt')


def _extension_rank(filepath: str) -> int:
    return SUBTITLE_EXTENSIONS.index(os.path.splitext(filepath)[1].lower())


def drop_colliding_names(subtitles: List[Tuple[str, int]]) -> List[Tuple[str, int]]:
    """
    Keeps one file per output name.

    `movie.vtt` and `movie.srt` would both be saved as `movie.<fmt>`; the file
    whose extension comes first in SUBTITLE_EXTENSIONS is kept and the others
    are skipped with a warning.
    """
    by_name = {}
    for item in subtitles:
        by_name.setdefault(base_name(item[0]), []).append(item)

    kept = []
    for name, items in by_name.items():
        items.sort(key=lambda item: _extension_rank(item[0]))
        kept.append(items[0])
        for skipped, _ in items[1:]:
            logger.warning(
                f"Skipping {os.path.basename(skipped)}: its translation would overwrite the one of "
                f"{os.path.basename(items[0][0])} (both saved as '{name}')."
            )
    return kept


def find_and_sort_subtitles(input_dir: str) -> List[Tuple[str, int]]:
    """
    Finds all subtitle files in the input directory and sorts them by size.

    Files sharing a name apart from the extension are reduced to one, see
    drop_colliding_names().

    Args:
        input_dir: The directory to search for subtitle files.

    Returns:
        A list of (filepath, filesize) tuples sorted by filesize, smallest first.

    Raises:
        FileNotFoundError: If the input directory doesn't exist.
        ValueError: If the input path is not a directory.
    """
    if not os.path.exists(input_dir):
        raise FileNotFoundError(f"Input directory not found: {input_dir}")
    if not os.path.isdir(input_dir):
        raise ValueError(f"Input path is not a directory: {input_dir}")

    subtitles = []
    logger.info(f"Scanning directory for subtitle files: {input_dir}")
    for filename in sorted(os.listdir(input_dir)):
        # Case-insensitive check for the extension
        if filename.lower().endswith(SUBTITLE_EXTENSIONS):
            filepath = os.path.join(input_dir, filename)
            try:
                if os.path.isfile(filepath):
                    subtitles.append((filepath, os.path.getsize(filepath)))
            except OSError as e:
                logger.warning(f"Could not access file {filepath}: {e}. Skipping.")

    subtitles = drop_colliding_names(subtitles)
    subtitles.sort(key=lambda item: item[1])
    logger.info(f"Found {len(subtitles)} subtitle files. Sorted by size (smallest first).")
    return subtitles


def translate_file(session: TranslationSession, path: str, output_dir: str, strict: bool = False) -> bool:
    """
    Translates one file with an existing session and saves the result.

    Returns:
        True if the translation completed and was saved.
    """
    session.load_file(path)
    state = session.translate()
    if state.raw_vtt:
        saved = session.save(output_dir, strict=strict)
        logger.info(f"Saved translation to: {saved}")
    if state.error:
        logger.error(f"Translation of {os.path.basename(path)} failed: {state.error}")
        return False
    return bool(state.raw_vtt)


def run_batch_processing():
    """Parses arguments, sets up, and runs the batch subtitle translation."""
    parser = argparse.ArgumentParser(
        description="SubLingo Batch: Translate all VTT/SRT/TXT files in a directory.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "-i", "--input-dir",
        required=True,
        help="Directory containing the input subtitle files."
    )
    parser.add_argument(
        "-c", "--config",
        default="config.yaml",
        help="Path to the configuration YAML file."
    )
    parser.add_argument(
        "-t", "--target-lang",
        default=None,
        choices=[lang.code for lang in LANGUAGES],
        help="Override the target language specified in config."
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=LOG_LEVEL_NAMES,
        help="Set the logging level for console and file output."
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail a file instead of silently dropping blocks without a timing line."
    )

    args = parser.parse_args()

    # --- Setup Logging (Initial) ---
    log_level = parse_log_level(args.log_level)
    setup_logging(log_level=log_level, log_dir='logs', log_file='sublingo_batch_init.log')

    # --- Load Configuration ---
    try:
        config = ConfigLoader().load_config(args.config)
    except (ConfigurationError, FileNotFoundError) as e:
        logger.critical(f"Failed to load configuration: {e}", exc_info=True)
        sys.exit(1)

    # --- Re-configure Logging (Final) ---
    setup_logging(log_level=log_level, log_dir=config.get('log_dir', 'logs'), log_file='sublingo_batch.log')
    logger.info("Logging re-configured with settings from config file for batch processing.")

    if args.target_lang:
        logger.info(f"Overriding target_language from config with CLI argument: {args.target_lang}")
        config['target_language'] = args.target_lang

    # --- Find and Sort Subtitles ---
    try:
        sorted_files = [item[0] for item in find_and_sort_subtitles(args.input_dir)]
        if not sorted_files:
            logger.warning(f"No subtitle files found in {args.input_dir}. Exiting.")
            sys.exit(0)
    except (FileNotFoundError, ValueError) as e:
        logger.critical(f"Input directory error: {e}")
        sys.exit(1)

    # --- Setup Output Directory ---
    try:
        source_lang = find_language(config['source_language'])
        target_lang = find_language(config['target_language'])
        style = StyleOptions.from_dict(config['style'])
    except ValueError as e:
        logger.critical(f"Invalid language or style in configuration: {e}")
        sys.exit(1)

    output_dir = os.path.join(args.input_dir, "Subs", target_lang.name)
    try:
        ensure_dir_exists(output_dir)
    except FileSystemError as e:
        logger.critical(f"Could not create output directory: {e}")
        sys.exit(1)

    # --- Initialize the backend (ONCE) ---
    try:
        credentials = CredentialStore(config['credentials_file'], config.get('api_key_env'))
        provider = build_translator(config, credentials)
    except SubLingoError as e:
        logger.critical(f"Failed to initialize the translation backend: {e}", exc_info=True)
        sys.exit(1)

    total_files = len(sorted_files)
    files_processed = 0
    files_failed = 0
    batch_start_time = time.time()

    logger.info(f"--- Starting Batch Translation for {total_files} files ---")

    try:
        with tqdm(total=total_files, unit="file", desc="Starting Batch") as pbar:
            for path in sorted_files:
                filename = os.path.basename(path)
                pbar.set_description(f"Translating: {filename[:30]}...")

                store = TranslationStore()
                store.languages_changed(source_lang, target_lang)
                store.style_changed(style)
                store.format_changed(config['output_format'])
                session = TranslationSession(store, provider)
                try:
                    if translate_file(session, path, output_dir, strict=args.strict):
                        files_processed += 1
                    else:
                        files_failed += 1
                        if store.state.needs_credential:
                            logger.critical("The API key was rejected; stopping the batch.")
                            break
                except SubLingoError as e:
                    logger.error(f"SubLingo failed for '{filename}': {e}")
                    files_failed += 1
                except Exception as e:
                    logger.error(f"An unexpected error occurred processing '{filename}': {e}", exc_info=True)
                    files_failed += 1
                finally:
                    pbar.update(1)
    except KeyboardInterrupt:
        logger.warning("Batch process interrupted by user (Ctrl+C). Exiting.")
        sys.exit(1)
    finally:
        provider.close()

    logger.info("--- Batch Translation Finished ---")
    logger.info(f"Total time: {time.time() - batch_start_time:.2f} seconds")
    logger.info(f"Successfully translated: {files_processed}/{total_files} files")
    logger.info(f"Failed: {files_failed}/{total_files} files")

    sys.exit(1 if files_failed > 0 else 0)


if __name__ == "__main__":
    if sys.version_info < (3, 8):
        sys.stderr.write("SubLingo requires Python 3.8 or later.\n")
        sys.exit(1)

    run_batch_processing()
