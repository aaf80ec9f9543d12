"""Remote control for media receivers: resolve references, queue them, drive playback."""

__version__ = "0.1.0"
