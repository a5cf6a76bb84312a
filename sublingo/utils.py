"""Utility functions for SubLingo."""

import os
import logging
from .exceptions import FileSystemError

logger = logging.getLogger(__name__)

def ensure_dir_exists(dir_path: str) -> None:
    """
    Ensures that a directory exists. Creates it if it doesn't.

    Args:
        dir_path: The path to the directory.

    Raises:
        FileSystemError: If the directory cannot be created due to permissions
                         or if the path exists but is not a directory.
    """
    if not dir_path:
        raise ValueError("Directory path cannot be empty.")
    try:
        if not os.path.exists(dir_path):
            os.makedirs(dir_path)
            logger.info(f"Created directory: {dir_path}")
        elif not os.path.isdir(dir_path):
            raise FileSystemError(f"Path exists but is not a directory: {dir_path}")
    except OSError as e:
        logger.error(f"Error creating or accessing directory {dir_path}: {e}", exc_info=True)
        raise FileSystemError(f"Could not create or access directory {dir_path}: {e}") from e

def read_text_file(file_path: str) -> str:
    """
    Reads a subtitle file as UTF-8 text.

    A leading byte order mark is dropped so a `WEBVTT` header on the first
    line is still recognised.

    Raises:
        OSError: If the file cannot be opened or read.
        UnicodeDecodeError: If the file is not valid UTF-8.
    """
    with open(file_path, 'r', encoding='utf-8-sig') as f:
        return f.read()

def write_text_file(file_path: str, content: str) -> None:
    """Writes text to a file, creating the parent directory if needed."""
    parent = os.path.dirname(file_path)
    if parent:
        ensure_dir_exists(parent)
    try:
        with open(file_path, 'w', encoding='utf-8', newline='\n') as f:
            f.write(content)
    except OSError as e:
        logger.error(f"Failed to write file {file_path}: {e}", exc_info=True)
        raise FileSystemError(f"Could not write file {file_path}: {e}") from e
