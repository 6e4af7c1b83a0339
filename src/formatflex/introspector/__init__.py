"""Media introspection: turn ffprobe reports into MediaProfile objects."""

from formatflex.introspector.ffprobe import FFprobeIntrospector
from formatflex.introspector.interface import MediaProber
from formatflex.introspector.parsers import parse_ffprobe_output

__all__ = ["FFprobeIntrospector", "MediaProber", "parse_ffprobe_output"]
