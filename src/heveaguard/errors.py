"""
Exceptions raised along the inference pipeline.
"""


class InferenceError(Exception):
    """Base exception for a failed classification request"""
    pass


class NotReadyError(InferenceError):
    """Raised when a request arrives before the classifier is loaded"""

    def __init__(self, message: str = "Model not loaded yet. Please try again later.") -> None:
        super().__init__(message)


class BadInputError(InferenceError):
    """Raised for a missing or malformed request payload"""
    pass


class UploadTooLargeError(BadInputError):
    """Raised when an upload exceeds the configured size ceiling"""
    pass


class DecodeError(InferenceError):
    """Raised when image bytes cannot be decoded"""
    pass


class ShapeMismatchError(InferenceError):
    """Raised when the model output does not match the label list"""
    pass


class PredictionError(InferenceError):
    """Raised when the model forward pass fails"""
    pass


class CleanupError(Exception):
    """Describes a failed temp-file removal; logged, never propagated"""
    pass
