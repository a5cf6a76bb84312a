"""Data models for SubLingo."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class SubtitleFormat(str, Enum):
    """The three text formats a translation can be shown or saved in."""
    VTT = "vtt"
    SRT = "srt"
    TXT = "txt"

    @property
    def extension(self) -> str:
        return self.value

    @property
    def mime_type(self) -> str:
        return MIME_TYPES[self]

    @classmethod
    def parse(cls, value) -> "SubtitleFormat":
        """Accepts a SubtitleFormat or a case-insensitive name such as 'SRT' or '.srt'."""
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower().lstrip('.')
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"Unsupported subtitle format: {value!r}. Choose one of: vtt, srt, txt.") from None


MIME_TYPES = {
    SubtitleFormat.VTT: "text/vtt",
    SubtitleFormat.SRT: "application/x-subrip",
    SubtitleFormat.TXT: "text/plain",
}


@dataclass
class Cue:
    """Represents a single timed caption entry."""
    start_time: str
    end_time: str
    text: List[str] = field(default_factory=list)
    sequence_number: Optional[int] = None


@dataclass(frozen=True)
class ExportPayload:
    """Bytes and file metadata for saving a rendered translation."""
    content: bytes
    filename: str
    mime_type: str
