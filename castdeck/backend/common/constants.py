"""Fixed values shared across subsystems."""

DEFAULT_SUBTITLE_PORT = 4101
SEEK_STEP_SECONDS = 30
SEEK_DEBOUNCE_SECONDS = 0.5
VOLUME_STEP = 0.05
