"""Builds the instruction prompt sent to the translation model."""

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class LanguageOption:
    code: str
    name: str


LANGUAGES: List[LanguageOption] = [
    LanguageOption('ja', 'Japanese'),
    LanguageOption('en', 'English'),
    LanguageOption('zh', 'Chinese'),
    LanguageOption('th', 'Thai'),
]

DEFAULT_SOURCE_LANGUAGE = 'en'
DEFAULT_TARGET_LANGUAGE = 'th'

LIVELINESS_LEVELS = ('Subtle', 'Natural', 'Vivid')
EMOTIONALITY_LEVELS = ('Subtle', 'Expressive', 'Intense')
SLANG_LEVELS = ('Minimal', 'Moderate', 'Heavy')


def find_language(code_or_name: str) -> LanguageOption:
    """
    Looks up a supported language by code ('th') or name ('Thai').

    Raises:
        ValueError: If the language is not supported.
    """
    wanted = (code_or_name or '').strip().lower()
    for lang in LANGUAGES:
        if wanted in (lang.code, lang.name.lower()):
            return lang
    supported = ", ".join(f"{l.code} ({l.name})" for l in LANGUAGES)
    raise ValueError(f"Unsupported language '{code_or_name}'. Supported: {supported}")


@dataclass(frozen=True)
class StyleOptions:
    """Advanced translation options forwarded to the model as a style guide."""
    liveliness: str = 'Natural'
    emotionality: str = 'Expressive'
    slang_level: str = 'Moderate'
    keywords_to_emphasize: str = ''
    keywords_to_avoid: str = ''

    def __post_init__(self):
        _check_level('liveliness', self.liveliness, LIVELINESS_LEVELS)
        _check_level('emotionality', self.emotionality, EMOTIONALITY_LEVELS)
        _check_level('slang_level', self.slang_level, SLANG_LEVELS)

    @classmethod
    def from_dict(cls, values: Optional[dict]) -> "StyleOptions":
        """Builds options from the 'style' section of the config file."""
        values = values or {}
        known = {k: v for k, v in values.items() if k in cls.__dataclass_fields__ and v is not None}
        return cls(**known)


def _check_level(option: str, value: str, allowed) -> None:
    if value not in allowed:
        raise ValueError(f"Invalid {option} '{value}'. Choose one of: {', '.join(allowed)}.")


def build_style_guide(style: StyleOptions) -> str:
    lines = [
        "**Translation Style Guide:**",
        f"- **Liveliness Level:** {style.liveliness}. Adjust the energy and pacing of the dialogue accordingly.",
        f"- **Emotionality Level:** {style.emotionality}. The translation should reflect this level of emotional intensity.",
        f"- **Slang Level:** {style.slang_level}. Use colloquial expressions and slang to this degree where they fit the scene.",
    ]
    if style.keywords_to_emphasize.strip():
        lines.append(
            "- **Keywords to Emphasize:** Prioritize using or capturing the essence of these "
            f"words/phrases: \"{style.keywords_to_emphasize.strip()}\"."
        )
    if style.keywords_to_avoid.strip():
        lines.append(f"- **Keywords to Avoid:** Do not use the following words/phrases: \"{style.keywords_to_avoid.strip()}\".")
    return "\n".join(lines)


def build_prompt(
    source_content: str,
    source_lang: LanguageOption,
    target_lang: LanguageOption,
    style: Optional[StyleOptions] = None
) -> str:
    """
    Builds the translation prompt for one subtitle document.

    The model is asked to answer with WebVTT only, starting at the header, so
    the streamed answer can be rendered while it is still arriving.

    Args:
        source_content: The subtitle file to translate (VTT, SRT or text).
        source_lang: Language of the subtitles.
        target_lang: Language to translate into.
        style: Style guide options. Defaults are used when omitted.

    Returns:
        The complete prompt text.
    """
    style = style or StyleOptions()
    return f"""You are an expert translator specializing in movie and TV subtitles. Your task is to translate the following subtitle content from {source_lang.name} to {target_lang.name}.

**Translation Rules:**
1. **Style & Tone:** Translate the dialogue so it sounds lively, emotional and natural to a native {target_lang.name} viewer, following the style guide below.
2. **Timestamp Accuracy:** Preserve the original timestamps perfectly. Do not alter their format or timing.
3. **Output Format:** The final output MUST be in valid WebVTT (.vtt) format.
4. **Line Breaks for Dialogue:** If a single subtitle cue contains dialogue from multiple speakers separated by a dash ('-'), you MUST place each speaker's dialogue on a new line. For example, convert "- Hello there. - Hi." into two lines:
   - Hello there.
   - Hi.
5. **IMPORTANT:** Start generating the VTT content immediately. Do not include any introductory text, explanations, or code fences (like ```vtt or ```). The response should start directly with "WEBVTT".

{build_style_guide(style)}

**Original Subtitle Content ({source_lang.name}):**
---
{source_content}
---

Now, provide the translation in {target_lang.name} following all the rules and the style guide above.
"""
