"""Handles loading configuration from YAML files."""

import copy
import yaml
import os
import logging
from .exceptions import ConfigurationError
from .models import SubtitleFormat
from .prompt_builder import StyleOptions, find_language

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    'backend': 'gemini',  # gemini | huggingface
    'gemini_model': 'gemini-2.5-flash',
    'gemini_api_base': 'https://generativelanguage.googleapis.com/v1beta',
    'request_timeout': 120,
    'hf_model': 'Qwen/Qwen2.5-1.5B-Instruct',
    'device': 'cuda',
    'max_new_tokens': 4096,
    'credentials_file': '~/.sublingo/credentials.yaml',
    'api_key_env': 'GEMINI_API_KEY',
    'source_language': 'en',
    'target_language': 'th',
    'output_format': 'vtt',
    'output_dir': 'translated',
    'style': {
        'liveliness': 'Natural',
        'emotionality': 'Expressive',
        'slang_level': 'Moderate',
        'keywords_to_emphasize': '',
        'keywords_to_avoid': '',
    },
    'log_dir': 'logs',
    'log_file': 'sublingo.log',
}

SUPPORTED_BACKENDS = ('gemini', 'huggingface')
SUPPORTED_DEVICES = ('cuda', 'cpu')


class ConfigLoader:
    """Loads configuration settings from a YAML file."""

    def load_config(self, config_path: str) -> dict:
        """
        Loads configuration from the specified YAML file path.

        Values missing from the file are filled in from DEFAULT_CONFIG; the
        'style' section is merged key by key.

        Args:
            config_path: The path to the YAML configuration file.

        Returns:
            A dictionary containing the loaded configuration settings.

        Raises:
            FileNotFoundError: If the configuration file does not exist.
            ConfigurationError: If the file cannot be parsed as YAML, holds
                              invalid values or cannot be read.
        """
        logger.info(f"Attempting to load configuration from: {config_path}")
        if not os.path.exists(config_path):
            logger.error(f"Configuration file not found at path: {config_path}")
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        if not os.path.isfile(config_path):
            logger.error(f"Configuration path is not a file: {config_path}")
            raise ConfigurationError(f"Configuration path is not a file: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML configuration file {config_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Invalid YAML format in {config_path}: {e}") from e
        except IOError as e:
            logger.error(f"Error reading configuration file {config_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Could not read configuration file {config_path}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            logger.error(f"Configuration file {config_path} did not load as a dictionary (root object).")
            raise ConfigurationError(f"Invalid YAML structure in {config_path}. Root must be a mapping (dictionary).")

        config = self.merge_defaults(loaded)
        self.validate(config)
        logger.info(f"Configuration loaded successfully from {config_path}")
        return config

    @staticmethod
    def merge_defaults(loaded: dict) -> dict:
        config = copy.deepcopy(DEFAULT_CONFIG)
        for key, value in loaded.items():
            if key == 'style':
                if value is not None and not isinstance(value, dict):
                    raise ConfigurationError("'style' must be a mapping.")
                config['style'].update(value or {})
            else:
                config[key] = value
        return config

    @staticmethod
    def validate(config: dict) -> None:
        """Checks values that would otherwise fail late, mid-translation."""
        backend = str(config.get('backend', '')).lower()
        if backend not in SUPPORTED_BACKENDS:
            raise ConfigurationError(
                f"Unsupported backend '{config.get('backend')}'. Choose one of: {', '.join(SUPPORTED_BACKENDS)}."
            )
        config['backend'] = backend

        for key in ('request_timeout', 'max_new_tokens'):
            value = config.get(key)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise ConfigurationError(f"'{key}' must be a positive number, got {value!r}.")

        device = str(config.get('device', '')).lower()
        if device not in SUPPORTED_DEVICES:
            raise ConfigurationError(
                f"Unsupported device '{config.get('device')}'. Choose one of: {', '.join(SUPPORTED_DEVICES)}."
            )
        config['device'] = device

        try:
            SubtitleFormat.parse(config.get('output_format'))
            for key in ('source_language', 'target_language'):
                find_language(str(config.get(key) or ''))
            StyleOptions.from_dict(config.get('style'))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration value: {e}") from e
