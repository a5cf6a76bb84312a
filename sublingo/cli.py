"""Command-Line Interface handler for SubLingo."""

import argparse
import logging
import os
import sys
from typing import List, Optional

from .config_loader import ConfigLoader, DEFAULT_CONFIG
from .converter import convert, count_dropped_blocks
from .credentials import CredentialStore
from .exceptions import SubLingoError, ConfigurationError, FormattingError
from .log_setup import LOG_LEVEL_NAMES, parse_log_level, setup_logging
from .models import SubtitleFormat
from .prompt_builder import (
    EMOTIONALITY_LEVELS,
    LIVELINESS_LEVELS,
    LANGUAGES,
    SLANG_LEVELS,
    StyleOptions,
    find_language,
)
from .session import TranslationSession
from .state import AppState, TranslationStore
from .translator import GeminiTranslator, TranslationProvider
from .utils import read_text_file, write_text_file

logger = logging.getLogger(__name__) # Get logger for this module

DEFAULT_CONFIG_PATH = "config.yaml"
FORMAT_CHOICES = [f.value for f in SubtitleFormat]
LANGUAGE_CHOICES = [lang.code for lang in LANGUAGES]


def build_translator(config: dict, credentials: CredentialStore) -> TranslationProvider:
    """
    Creates the translation provider selected by config['backend'].

    The Hugging Face backend is imported on demand so that torch is only
    loaded when a local model is actually used.
    """
    backend = config.get('backend', 'gemini')
    if backend == 'huggingface':
        from .hf_translator import HuggingFaceTranslator
        return HuggingFaceTranslator(
            model_name=config.get('hf_model'),
            device=config.get('device', 'cuda'),
            max_new_tokens=int(config.get('max_new_tokens', 4096)),
            token=credentials.load(),
            stream_timeout=float(config.get('request_timeout', 120))
        )
    return GeminiTranslator(
        api_key=credentials.load(),
        model=config.get('gemini_model'),
        api_base=config.get('gemini_api_base'),
        timeout=float(config.get('request_timeout', 120))
    )


class ConsoleRenderer:
    """Subscribes to the store and reports progress while fragments arrive."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stderr
        self._last_chars = 0
        self._last_error = None

    def __call__(self, state: AppState) -> None:
        if state.error and state.error != self._last_error:
            self._last_error = state.error
            self.stream.write(f"Error: {state.error}\n")
        if state.is_loading and len(state.raw_vtt) != self._last_chars:
            self._last_chars = len(state.raw_vtt)
            self.stream.write(f"\rReceived {self._last_chars} characters...")
            self.stream.flush()
        elif not state.is_loading and self._last_chars:
            self.stream.write("\n")
            self._last_chars = 0


class CLIHandler:
    """Parses arguments and dispatches the SubLingo commands."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Creates the argument parser for the CLI."""
        parser = argparse.ArgumentParser(
            prog="sublingo",
            description="SubLingo: Translate subtitles with AI and convert between VTT, SRT and plain text.",
            formatter_class=argparse.ArgumentDefaultsHelpFormatter # Show defaults in help
        )
        parser.add_argument(
            "-c", "--config",
            default=None,
            help=f"Path to the configuration YAML file (defaults to ./{DEFAULT_CONFIG_PATH} when present)."
        )
        parser.add_argument(
            "--log-level",
            default="INFO",
            choices=LOG_LEVEL_NAMES,
            help="Set the logging level for console and file output."
        )
        subparsers = parser.add_subparsers(dest="command", required=True)

        # --- convert ---
        convert_parser = subparsers.add_parser(
            "convert",
            help="Convert a subtitle file between formats.",
            formatter_class=argparse.ArgumentDefaultsHelpFormatter
        )
        convert_parser.add_argument("input", help="Path to the input subtitle file.")
        convert_parser.add_argument(
            "--from", dest="source_format", choices=["vtt", "srt"], default=None,
            help="Input format. Guessed from the file extension when omitted."
        )
        convert_parser.add_argument("--to", dest="target_format", choices=FORMAT_CHOICES, required=True,
                                    help="Output format.")
        convert_parser.add_argument("-o", "--output", default=None,
                                    help="Output file. Prints to stdout when omitted.")
        convert_parser.add_argument("--strict", action="store_true",
                                    help="Fail instead of silently dropping blocks without a timing line.")

        # --- translate ---
        translate_parser = subparsers.add_parser(
            "translate",
            help="Translate a subtitle file with the configured AI backend.",
            formatter_class=argparse.ArgumentDefaultsHelpFormatter
        )
        translate_parser.add_argument("input", help="Path to the subtitle file to translate (.vtt, .srt or .txt).")
        translate_parser.add_argument("-s", "--source-lang", choices=LANGUAGE_CHOICES, default=None,
                                      help="Source language (default from config).")
        translate_parser.add_argument("-t", "--target-lang", choices=LANGUAGE_CHOICES, default=None,
                                      help="Target language (default from config).")
        translate_parser.add_argument("-f", "--format", choices=FORMAT_CHOICES, default=None,
                                      help="Display and download format (default from config).")
        translate_parser.add_argument("-o", "--output-dir", default=None,
                                      help="Directory for the translated file (default from config).")
        translate_parser.add_argument("--stdout", action="store_true",
                                      help="Print the translation instead of saving it.")
        translate_parser.add_argument("--backend", choices=["gemini", "huggingface"], default=None,
                                      help="Override the translation backend specified in config.")
        translate_parser.add_argument("--device", choices=["cuda", "cpu"], default=None,
                                      help="Override the device for the huggingface backend.")
        translate_parser.add_argument("--liveliness", choices=LIVELINESS_LEVELS, default=None)
        translate_parser.add_argument("--emotionality", choices=EMOTIONALITY_LEVELS, default=None)
        translate_parser.add_argument("--slang-level", choices=SLANG_LEVELS, default=None)
        translate_parser.add_argument("--emphasize", default=None, help="Keywords to emphasize.")
        translate_parser.add_argument("--avoid", default=None, help="Keywords to avoid.")
        translate_parser.add_argument("--strict", action="store_true",
                                      help="Fail instead of silently dropping blocks without a timing line.")

        # --- key ---
        key_parser = subparsers.add_parser("key", help="Show, store or remove the provider API key.")
        key_parser.add_argument("action", choices=["show", "set", "clear"])
        key_parser.add_argument("value", nargs="?", default=None, help="The API key (for 'set').")

        return parser

    def _load_config(self, config_path: Optional[str]) -> dict:
        if config_path is None:
            if not os.path.exists(DEFAULT_CONFIG_PATH):
                logger.info(f"No {DEFAULT_CONFIG_PATH} found; using built-in defaults.")
                return ConfigLoader.merge_defaults({})
            config_path = DEFAULT_CONFIG_PATH
        return ConfigLoader().load_config(config_path)

    def run(self, argv: Optional[List[str]] = None) -> None:
        """Parses arguments, sets up logging, loads config, and runs the command."""
        args = self.parser.parse_args(argv)

        # --- Setup Logging ---
        log_level = parse_log_level(args.log_level)
        setup_logging(log_level=log_level, log_dir=DEFAULT_CONFIG['log_dir'], log_file='sublingo_init.log')

        # --- Load Configuration ---
        try:
            config = self._load_config(args.config)
        except ConfigurationError as e:
            logger.critical(f"Failed to load configuration from {args.config}: {e}", exc_info=True)
            sys.exit(1)
        except FileNotFoundError:
            logger.critical(f"Configuration file not found: {args.config}", exc_info=True)
            sys.exit(1)

        # --- Re-configure Logging with settings from Config ---
        setup_logging(log_level=log_level, log_dir=config.get('log_dir', 'logs'),
                      log_file=config.get('log_file', 'sublingo.log'))
        logger.debug("Logging re-configured with settings from config file.")

        try:
            if args.command == "convert":
                self.run_convert(args)
            elif args.command == "translate":
                ok = self.run_translate(args, config)
                if not ok:
                    sys.exit(1)
            elif args.command == "key":
                self.run_key(args, config)
            sys.exit(0)
        except SubLingoError as e:
            logger.error(f"A SubLingo error occurred: {e}")
            sys.exit(1)
        except ValueError as e:
            logger.error(f"Invalid input: {e}")
            sys.exit(1)
        except KeyboardInterrupt:
            logger.warning("Process interrupted by user (Ctrl+C). Exiting.")
            sys.exit(1)
        except Exception as e:
            logger.critical(f"An unexpected critical error occurred at the top level: {e}", exc_info=True)
            sys.exit(2) # Use a different exit code for unexpected crashes

    def run_convert(self, args) -> None:
        """Converts one file; prints the result when no output path is given."""
        source_format = args.source_format or os.path.splitext(args.input)[1].lstrip('.').lower()
        if source_format not in ("vtt", "srt"):
            raise ValueError(f"Cannot guess the input format of {args.input}; pass --from vtt or --from srt.")
        try:
            content = read_text_file(args.input)
        except (OSError, UnicodeDecodeError) as e:
            raise SubLingoError(f"Failed to read {args.input}: {e}") from e

        dropped = count_dropped_blocks(content)
        if dropped:
            if args.strict:
                raise FormattingError(f"{dropped} block(s) in {args.input} have no timing line.")
            logger.warning(f"{dropped} block(s) in {args.input} have no timing line and will be dropped.")

        result = convert(content, source_format, args.target_format)
        if args.output:
            write_text_file(args.output, result + "\n" if result else result)
            logger.info(f"Converted {args.input} ({source_format}) to {args.output} ({args.target_format})")
        else:
            sys.stdout.write(result + "\n")

    def _apply_overrides(self, args, config: dict) -> None:
        if args.backend:
            logger.info(f"Overriding backend from config with CLI argument: {args.backend}")
            config['backend'] = args.backend
        if args.device:
            logger.info(f"Overriding device from config with CLI argument: {args.device}")
            config['device'] = args.device
        style_overrides = {
            'liveliness': args.liveliness,
            'emotionality': args.emotionality,
            'slang_level': args.slang_level,
            'keywords_to_emphasize': args.emphasize,
            'keywords_to_avoid': args.avoid,
        }
        config['style'].update({k: v for k, v in style_overrides.items() if v is not None})

    def run_translate(self, args, config: dict) -> bool:
        """
        Translates one file and saves or prints the result.

        Returns:
            True on success, False when the translation failed (the partial
            text, if any, is still saved).
        """
        self._apply_overrides(args, config)
        if not os.path.isfile(args.input):
            raise SubLingoError(f"Input subtitle file not found or is not a file: {args.input}")

        credentials = CredentialStore(config['credentials_file'], config.get('api_key_env'))
        store = TranslationStore()
        store.languages_changed(
            find_language(args.source_lang or config['source_language']),
            find_language(args.target_lang or config['target_language'])
        )
        store.style_changed(StyleOptions.from_dict(config['style']))
        store.format_changed(args.format or config['output_format'])
        store.subscribe(ConsoleRenderer())

        logger.info("Initializing translation backend...")
        session = TranslationSession(store, build_translator(config, credentials))
        try:
            session.load_file(args.input)
            state = session.translate()

            if state.raw_vtt:
                if args.stdout:
                    sys.stdout.write(session.rendered() + "\n")
                else:
                    path = session.save(args.output_dir or config['output_dir'], strict=args.strict)
                    logger.info(f"Translation saved to: {path}")

            if state.error:
                if state.needs_credential:
                    logger.error("Set a valid key with 'sublingo key set <API_KEY>' "
                                 f"or the {config.get('api_key_env')} environment variable.")
                return False
            return True
        finally:
            session.close()

    def run_key(self, args, config: dict) -> None:
        credentials = CredentialStore(config['credentials_file'], config.get('api_key_env'))
        if args.action == "set":
            value = args.value
            if not value:
                raise ValueError("Usage: key set <API_KEY>")
            credentials.save(value)
            sys.stdout.write(f"API key saved: {CredentialStore.mask(value)}\n")
        elif args.action == "clear":
            removed = credentials.clear()
            sys.stdout.write("Stored API key removed.\n" if removed else "No stored API key.\n")
        else:
            sys.stdout.write(f"API key: {CredentialStore.mask(credentials.load())}\n")
