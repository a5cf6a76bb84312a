"""
Conversion between WebVTT, SubRip (SRT) and plain dialogue text.

All functions here work on whole documents held in strings. They never raise
on malformed input: a block without a `-->` timestamp line is skipped and the
rest of the document is still converted. This keeps them safe to call on
every streamed update of a partially generated translation.
"""

import re
from typing import List

from .models import Cue, SubtitleFormat

TIMESTAMP_MARKER = '-->'

# Header only counts when the line is terminated; a bare "WEBVTT" stays in the text
VTT_HEADER_RE = re.compile(r'^WEBVTT[^\n]*\r?\n', re.IGNORECASE)
BLANK_LINE_RE = re.compile(r'\r?\n\r?\n')
LINE_BREAK_RE = re.compile(r'\r?\n')
CUE_NUMBER_RE = re.compile(r'^[0-9]+$')
TIMING_RE = re.compile(r'^\s*(\S+)\s*-->\s*(\S+)')


def _find_timestamp_line(lines: List[str]) -> int:
    """Index of the first line containing '-->', or -1."""
    for i, line in enumerate(lines):
        if TIMESTAMP_MARKER in line:
            return i
    return -1


def vtt_to_srt(vtt_content: str) -> str:
    """
    Converts WebVTT content to SRT.

    The WEBVTT header line is removed, kept cues are numbered from 1 and the
    millisecond separator in the timing line becomes a comma. Cue identifiers
    or numbers present in the input are discarded.

    Args:
        vtt_content: The VTT document.

    Returns:
        The SRT document, without leading or trailing blank lines.
    """
    if not vtt_content:
        return ''
    clean_vtt = VTT_HEADER_RE.sub('', vtt_content, count=1).strip()

    srt_blocks = []
    cue_number = 1
    for block in BLANK_LINE_RE.split(clean_vtt):
        if not block.strip():
            continue
        lines = LINE_BREAK_RE.split(block)
        ts_index = _find_timestamp_line(lines)
        if ts_index == -1:
            continue
        timing = lines[ts_index].replace('.', ',')
        cue_text = '\n'.join(lines[ts_index + 1:])
        srt_blocks.append(f"{cue_number}\n{timing}\n{cue_text}\n\n")
        cue_number += 1

    return ''.join(srt_blocks).strip()


def srt_to_vtt(srt_content: str) -> str:
    """
    Converts SRT content to WebVTT.

    Also used to sanitize text that is supposed to be VTT already: sequence
    numbers in front of a timing line are dropped and timings that already use
    dots pass through untouched, so applying it twice gives the same result as
    applying it once.

    Args:
        srt_content: The SRT (or VTT-like) document.

    Returns:
        A VTT document starting with a single WEBVTT header. Non-empty input
        without any cue yields just the header.
    """
    if not srt_content:
        return ''
    normalized = srt_content.strip().replace('\r', '')

    vtt_parts = ['WEBVTT\n\n']
    for block in normalized.split('\n\n'):
        if not block.strip():
            continue
        lines = block.split('\n')
        ts_index = _find_timestamp_line(lines)
        if ts_index == -1:
            continue
        timing = lines[ts_index].replace(',', '.')
        cue_text = '\n'.join(lines[ts_index + 1:])
        vtt_parts.append(f"{timing}\n{cue_text}\n\n")

    return ''.join(vtt_parts).strip()


def vtt_to_txt(vtt_content: str) -> str:
    """Extracts only the dialogue lines from a VTT (or SRT) document."""
    if not vtt_content:
        return ''
    kept = []
    for line in LINE_BREAK_RE.split(vtt_content):
        trimmed = line.strip()
        if (
            not trimmed
            or trimmed.lower().startswith('webvtt')
            or TIMESTAMP_MARKER in trimmed
            or CUE_NUMBER_RE.match(trimmed)
        ):
            continue
        kept.append(trimmed)
    return '\n'.join(kept).strip()


def convert(text: str, source, target) -> str:
    """
    Converts a document from one format to another.

    `srt -> vtt`, `vtt -> srt` and `vtt -> txt` map directly onto the three
    converters. Every other combination sanitizes the input to VTT first.

    Args:
        text: The document to convert.
        source: Input format, 'vtt' or 'srt'.
        target: Output format, 'vtt', 'srt' or 'txt'.

    Raises:
        ValueError: If a format name is unknown or `source` is 'txt'.
    """
    source_fmt = SubtitleFormat.parse(source)
    target_fmt = SubtitleFormat.parse(target)
    if source_fmt is SubtitleFormat.TXT:
        raise ValueError("Plain text has no timings and cannot be converted from.")

    if source_fmt is SubtitleFormat.SRT and target_fmt is SubtitleFormat.VTT:
        return srt_to_vtt(text)
    if source_fmt is SubtitleFormat.VTT and target_fmt is SubtitleFormat.SRT:
        return vtt_to_srt(text)
    if source_fmt is SubtitleFormat.VTT and target_fmt is SubtitleFormat.TXT:
        return vtt_to_txt(text)

    canonical = srt_to_vtt(text)
    if target_fmt is SubtitleFormat.SRT:
        return vtt_to_srt(canonical)
    if target_fmt is SubtitleFormat.TXT:
        return vtt_to_txt(canonical)
    return canonical


def count_dropped_blocks(content: str) -> int:
    """
    Counts the blocks the converters would silently skip.

    A block is dropped when it is not blank and has no timing line. A leading
    WEBVTT header block is not counted.
    """
    if not content:
        return 0
    blocks = content.strip().replace('\r', '').split('\n\n')
    dropped = 0
    for i, block in enumerate(blocks):
        if not block.strip():
            continue
        if i == 0 and block.lower().startswith('webvtt'):
            continue
        if TIMESTAMP_MARKER not in block:
            dropped += 1
    return dropped


def parse_cues(content: str) -> List[Cue]:
    """
    Parses a VTT or SRT document into Cue objects.

    Uses the same block rules as the converters, so for well-formed input the
    result has as many cues as `vtt_to_srt` would number.
    """
    cues = []
    if not content:
        return cues
    for block in content.strip().replace('\r', '').split('\n\n'):
        if not block.strip():
            continue
        lines = block.split('\n')
        ts_index = _find_timestamp_line(lines)
        if ts_index == -1:
            continue
        match = TIMING_RE.match(lines[ts_index])
        start, end = match.groups() if match else ('', '')
        number = None
        if ts_index > 0 and CUE_NUMBER_RE.match(lines[ts_index - 1].strip()):
            number = int(lines[ts_index - 1].strip())
        cues.append(Cue(
            start_time=start,
            end_time=end,
            text=lines[ts_index + 1:],
            sequence_number=number
        ))
    return cues
