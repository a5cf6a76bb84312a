"""Storage for the translation provider's API key."""

import logging
import os
from typing import Optional

import yaml

from .exceptions import ConfigurationError, FileSystemError
from .utils import ensure_dir_exists

logger = logging.getLogger(__name__)

DEFAULT_CREDENTIALS_FILE = os.path.join("~", ".sublingo", "credentials.yaml")
DEFAULT_API_KEY_ENV = "GEMINI_API_KEY"


class CredentialStore:
    """
    Loads, saves and clears the API key.

    The environment variable takes precedence over the file so a key can be
    supplied per invocation without touching the stored one.
    """

    def __init__(self, path: str = DEFAULT_CREDENTIALS_FILE, env_var: Optional[str] = DEFAULT_API_KEY_ENV):
        self.path = os.path.expanduser(path)
        self.env_var = env_var

    def load(self) -> Optional[str]:
        """
        Returns the configured API key, or None when no key is available.

        Raises:
            ConfigurationError: If the credentials file exists but cannot be parsed.
        """
        if self.env_var:
            env_value = os.environ.get(self.env_var, '').strip()
            if env_value:
                logger.debug(f"Using API key from environment variable {self.env_var}")
                return env_value

        if not os.path.isfile(self.path):
            logger.debug(f"No credentials file at {self.path}")
            return None
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Error parsing credentials file {self.path}: {e}", exc_info=True)
            raise ConfigurationError(f"Invalid YAML format in {self.path}: {e}") from e
        except OSError as e:
            logger.error(f"Error reading credentials file {self.path}: {e}", exc_info=True)
            raise ConfigurationError(f"Could not read credentials file {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Invalid credentials file {self.path}. Root must be a mapping.")
        key = str(data.get('api_key') or '').strip()
        return key or None

    def save(self, api_key: str) -> None:
        """
        Stores the API key in the credentials file.

        Raises:
            ValueError: If the key is blank.
            FileSystemError: If the file cannot be written.
        """
        api_key = (api_key or '').strip()
        if not api_key:
            raise ValueError("API key cannot be empty.")

        parent = os.path.dirname(self.path)
        if parent:
            ensure_dir_exists(parent)
        try:
            with open(self.path, 'w', encoding='utf-8') as f:
                yaml.safe_dump({'api_key': api_key}, f, default_flow_style=False)
            try:
                os.chmod(self.path, 0o600)
            except OSError:
                logger.warning(f"Could not restrict permissions on {self.path}")
        except OSError as e:
            logger.error(f"Failed to write credentials file {self.path}: {e}", exc_info=True)
            raise FileSystemError(f"Could not write credentials file {self.path}: {e}") from e
        logger.info(f"API key saved to {self.path}")

    def clear(self) -> bool:
        """
        Removes the stored API key.

        Returns:
            True if a stored key was removed, False if there was none.
        """
        if not os.path.exists(self.path):
            return False
        try:
            os.remove(self.path)
        except OSError as e:
            logger.error(f"Failed to remove credentials file {self.path}: {e}", exc_info=True)
            raise FileSystemError(f"Could not remove credentials file {self.path}: {e}") from e
        logger.info(f"Removed stored API key at {self.path}")
        return True

    @staticmethod
    def mask(api_key: Optional[str]) -> str:
        """Renders a key for display, keeping only its last four characters."""
        if not api_key:
            return "(not set)"
        if len(api_key) <= 4:
            return "*" * len(api_key)
        return "*" * (len(api_key) - 4) + api_key[-4:]
