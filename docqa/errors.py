"""Error taxonomy for the question answering pipeline."""
from typing import Optional


class DocQAError(Exception):
    """Base class for every error the pipeline reports to the user."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class ConfigurationError(DocQAError):
    """Invalid configuration (chunk parameters, provider name, ...)."""


class DocumentNotFoundError(DocQAError, FileNotFoundError):
    """Input file does not exist."""


class ReadError(DocQAError):
    """Input file exists but could not be read or decoded."""


class TemplateError(DocQAError):
    """Prompt template is missing a required slot."""


class ProviderError(DocQAError):
    """Failure talking to the embedding or generation provider."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransientError(ProviderError):
    """Network or rate-limit failure; safe to retry with backoff."""


class FatalError(ProviderError):
    """Invalid credentials or request; never retried."""
