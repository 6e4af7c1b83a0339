"""FormatFlex - plan and run ffmpeg conversions with hardware fallback."""

__version__ = "0.4.0"
