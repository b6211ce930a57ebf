"""Exception taxonomy for the marker transform node."""


class MarkerTfError(Exception):
    """Base class for all node errors."""


class ConfigurationError(MarkerTfError):
    """Startup configuration is missing or invalid. Fatal."""


class CameraModelNotReady(MarkerTfError):
    """A frame arrived before the camera model was populated."""


class ImageDecodeError(MarkerTfError):
    """Incoming image could not be converted to RGB8."""


class TransformError(MarkerTfError):
    pass


class TransformUnavailable(TransformError):
    """The requested transform did not appear within the wait bound."""


class TransformLookupError(TransformError):
    """The transform store failed to produce a transform."""
