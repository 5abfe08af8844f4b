"""Shared constants and defaults."""

APP_NAME = "audiocascade"
WORK_DIR_NAME = "audiocascade-audio"

DEFAULT_SAMPLE_RATE = 16000
DEFAULT_CHANNELS = 1
SAMPLE_WIDTH = 2  # bytes, s16le

PROCESS_LIVENESS_SECONDS = 2.0
IPC_LIVENESS_SECONDS = 3.0
STOP_GRACE_SECONDS = 5.0
SYNTHETIC_INTERVAL_SECONDS = 3.0
SYNTHETIC_SECONDS = 4.0
SYNTHETIC_MAX_SECONDS = 60.0

HELPER_READY_TOKEN = "READY"
HELPER_ERROR_PREFIX = "ERROR"

FATAL_DIAGNOSTICS = (
    "permission denied",
    "device or resource busy",
    "no such device",
    "invalid device",
    "input/output error",
)

BACKEND_NAMES = ("native-helper", "mixed", "microphone", "system-audio", "renderer", "synthetic")
