"""SubLingo: subtitle format conversion and AI-assisted subtitle translation."""

__version__ = "0.1.0"
