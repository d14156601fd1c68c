"""All magic numbers and configuration constants."""

RATE_MIN = 0.5                      # slowest speech rate accepted by the engine
RATE_MAX = 3.0                      # fastest speech rate accepted by the engine
PITCH_MIN = 0.0
PITCH_MAX = 2.0
DEFAULT_RATE = 1.0
DEFAULT_PITCH = 1.0
DEFAULT_VOICE = "en-US-AriaNeural"           # edge-tts voice used when none is selected
EDGE_PITCH_HZ_PER_UNIT = 50                  # pitch 2.0 = +50Hz, pitch 0.0 = -50Hz
PACED_SINK_TICK_SECONDS = 0.05               # pause polling granularity while rendering a clip
UNSUPPORTED_MESSAGE = "Speech synthesis not supported"
CANCELLED_REASON = "cancelled"
SETTINGS_FILENAME = "chapter-reader.json"
VERSION = "0.1.0"
