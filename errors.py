# errors.py
from typing import Optional


class LegacyBrdError(Exception):
    """Base class for errors raised by the legacy BRD pipeline."""


class RulesValidationError(LegacyBrdError, ValueError):
    """The uploaded rule export is empty or unusable."""


class LegacyBrdNotFoundError(LegacyBrdError, LookupError):
    """No legacy record exists for a BRD that needs one."""


class ExternalCollaboratorError(LegacyBrdError):
    """
    A collaborator (blob storage, semantic matcher, BRD form service, ...)
    failed. The original exception is chained as __cause__ and its message is
    kept in the error text.
    """

    def __init__(self, collaborator: str, message: str, cause: Optional[BaseException] = None):
        self.collaborator = collaborator
        self.cause_message = str(cause) if cause is not None else None
        text = f"{collaborator}: {message}"
        if self.cause_message:
            text = f"{text} ({self.cause_message})"
        super().__init__(text)


class ArtifactSerializationError(LegacyBrdError):
    """The combined rules artifact could not be encoded."""
