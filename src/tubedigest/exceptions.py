"""
Domain exceptions.

Third-party failures (OpenAI SDK, youtube-transcript-api, sqlite) are translated
into these at the module boundary so callers only branch on one taxonomy.
Generation failures are not exceptions: they come back as
``GenerationFailed`` outcome values (see ``state.py``).
"""

from __future__ import annotations


class TubeDigestError(Exception):
    """Base class for all tubedigest errors."""

    error_code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DocumentUnavailable(TubeDigestError):
    """No transcript text could be obtained for a video. Never retried."""

    error_code = "document_unavailable"


class InvalidVideoReference(DocumentUnavailable):
    error_code = "invalid_reference"


class TranscriptNotFound(DocumentUnavailable):
    error_code = "not_found"


class EmptyTranscript(DocumentUnavailable):
    error_code = "empty_result"


class ConfigurationMissing(TubeDigestError, ValueError):
    """No model selected or no API key configured."""

    error_code = "configuration_missing"


class UnknownModelError(TubeDigestError, KeyError):
    """Model id is not in the model catalogue."""

    error_code = "unknown_model"

    def __str__(self) -> str:
        return self.message
