"""Error taxonomy for recording sessions."""


class AudioCascadeError(Exception):
    """Base class for all audiocascade errors."""


class AlreadyRecording(AudioCascadeError):
    """start() was called while a session is starting or recording."""


class NotRecording(AudioCascadeError):
    """stop() was called with no session recording."""


class BackendUnavailable(AudioCascadeError):
    """A capture backend could not be started. Advances the cascade."""


class DeviceFailure(AudioCascadeError):
    """A capture device reported a fatal diagnostic. Advances the cascade."""


class IoError(AudioCascadeError, OSError):
    """Reading or writing a recording file failed."""
