class FaceMeshError(Exception):
    """Base error for the face mesh component."""


class InitializationError(FaceMeshError):
    """The vision library, detector or camera could not be brought up."""


class FrameProcessingError(FaceMeshError):
    """A frame could not be run through the detector or drawn."""
