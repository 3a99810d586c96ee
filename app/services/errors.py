"""Typed failures surfaced to API callers.

Each error carries a machine-readable ``code`` and the HTTP status the API
layer answers with. ``message`` is shown to the caller as-is, so it must not
contain internal diagnostic detail.
"""
from __future__ import annotations


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidReference(AppError):
    code = "invalid_reference"
    status_code = 400


class TranscriptError(AppError):
    """Base for failures while acquiring or validating a transcript."""

    status_code = 400


class TranscriptUnavailable(TranscriptError):
    code = "transcript_unavailable"
    status_code = 422

    # static hints, not a diagnosis
    NO_CAPTIONS = "no_captions"
    KEY_MISSING = "key_missing"

    def __init__(self, message: str, *, video_id: str | None = None, reason: str = NO_CAPTIONS) -> None:
        super().__init__(message)
        self.video_id = video_id
        self.reason = reason


class TranscriptTooShort(TranscriptError):
    code = "transcript_too_short"


class TranscriptTooLong(TranscriptError):
    code = "transcript_too_long"


class ContentGenerationFailed(AppError):
    code = "content_generation_failed"
    status_code = 502


class QuizGenerationFailed(ContentGenerationFailed):
    code = "quiz_generation_failed"


class ConfigurationMissing(AppError):
    code = "configuration_missing"
    status_code = 500


class NotFound(AppError):
    code = "not_found"
    status_code = 404


class ValidationFailed(AppError):
    code = "validation_failed"
    status_code = 400


class Conflict(AppError):
    code = "conflict"
    status_code = 400


class AuthenticationFailed(AppError):
    code = "authentication_failed"
    status_code = 401
