"""Exception hierarchy for Talk2Me."""


class Talk2MeError(Exception):
    """Base class for all Talk2Me errors."""


class ConfigurationError(Talk2MeError):
    """Configuration file or settings are invalid."""


class CaptureUnavailableError(Talk2MeError):
    """The audio capture device could not be acquired."""


class CalibrationError(Talk2MeError):
    """Ambient noise calibration produced no samples."""


class ServiceError(Talk2MeError):
    """An external service call failed."""


class TranscriptionError(ServiceError):
    """Speech-to-text request failed."""


class SynthesisError(ServiceError):
    """Text-to-speech request failed."""


class GenerationError(ServiceError):
    """Reply generation request failed."""
