"""Derives display text and download files from the canonical VTT translation."""

import logging
import os
from typing import Optional, Union

from .converter import count_dropped_blocks, srt_to_vtt, vtt_to_srt, vtt_to_txt
from .exceptions import FileSystemError
from .models import ExportPayload, SubtitleFormat
from .utils import ensure_dir_exists

logger = logging.getLogger(__name__)

DEFAULT_BASE_NAME = "translated"

FormatLike = Union[SubtitleFormat, str]


def sanitize(raw_vtt: str) -> str:
    """
    Normalizes model output into strict WebVTT.

    Generated text sometimes carries SRT-style cue numbers or stray prose
    between cues. Running it through the SRT to VTT converter removes both and
    leaves valid VTT untouched.
    """
    if not raw_vtt:
        return ''
    dropped = count_dropped_blocks(raw_vtt)
    if dropped:
        logger.debug(f"Sanitizing dropped {dropped} block(s) without a timing line.")
    return srt_to_vtt(raw_vtt)


def render(canonical_vtt: str, fmt: FormatLike) -> str:
    """Returns the canonical VTT in the requested display format."""
    target = SubtitleFormat.parse(fmt)
    if target is SubtitleFormat.SRT:
        return vtt_to_srt(canonical_vtt)
    if target is SubtitleFormat.TXT:
        return vtt_to_txt(canonical_vtt)
    return canonical_vtt


def base_name(source_name: Optional[str]) -> str:
    """
    Builds the download base name from the source file name.

    Only the final extension is removed ("movie.en.vtt" becomes "movie.en").
    Names that leave nothing behind fall back to DEFAULT_BASE_NAME.
    """
    if not source_name:
        return DEFAULT_BASE_NAME
    filename = os.path.basename(source_name)
    stem = '.'.join(filename.split('.')[:-1])
    return stem or DEFAULT_BASE_NAME


def export(canonical_vtt: str, fmt: FormatLike, source_name: Optional[str] = None) -> ExportPayload:
    """
    Prepares a download of the translation.

    Args:
        canonical_vtt: The sanitized VTT translation.
        fmt: Target format (vtt, srt or txt).
        source_name: Name of the file that was translated, if any.

    Returns:
        An ExportPayload with UTF-8 content, file name and MIME type.
    """
    target = SubtitleFormat.parse(fmt)
    text = render(canonical_vtt, target)
    return ExportPayload(
        content=text.encode('utf-8'),
        filename=f"{base_name(source_name)}.{target.extension}",
        mime_type=target.mime_type
    )


def write_export(payload: ExportPayload, output_dir: str) -> str:
    """
    Writes an export payload into a directory.

    Returns:
        The path of the written file.

    Raises:
        FileSystemError: If the directory or file cannot be written.
    """
    ensure_dir_exists(output_dir)
    output_path = os.path.join(output_dir, payload.filename)
    if os.path.exists(output_path):
        logger.warning(f"Output file already exists, overwriting: {output_path}")
    try:
        with open(output_path, 'wb') as f:
            f.write(payload.content)
    except OSError as e:
        logger.error(f"Failed to write {payload.mime_type} file to {output_path}: {e}", exc_info=True)
        raise FileSystemError(f"Could not write {output_path}: {e}") from e
    logger.info(f"Saved {len(payload.content)} bytes ({payload.mime_type}) to {output_path}")
    return output_path
