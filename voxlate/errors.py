from __future__ import annotations


class VoxlateError(RuntimeError):
    """Base class for every recoverable pipeline error."""

    retryable = True


class PermissionDenied(VoxlateError):
    retryable = False


class AlreadyActive(VoxlateError):
    retryable = False


class RecognitionFailed(VoxlateError):
    pass


class ModelUnavailable(VoxlateError):
    pass


class TranslationFailed(VoxlateError):
    pass


class EmptyInput(VoxlateError):
    retryable = False


class UnknownLanguage(VoxlateError):
    retryable = False


class MicError(RecognitionFailed):
    pass


class BackendUnavailable(VoxlateError):
    """A capability backend's library is missing or failed to load."""

    retryable = False
