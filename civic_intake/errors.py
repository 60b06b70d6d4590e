"""
Exception types for the intake pipeline.

- CollaboratorError: classifier, extractor or interpreter failed or timed out
- PersistenceError: the intake record could not be written
- UnknownServiceError: a service id is not in the catalog
"""


class IntakeError(Exception):
    """Base class for all intake pipeline errors."""


class CollaboratorError(IntakeError):
    """Raised when a natural-language collaborator fails or times out."""


class PersistenceError(IntakeError):
    """Raised when the record sink rejects or fails to store a record."""


class UnknownServiceError(IntakeError, KeyError):
    """Raised when a service id is not present in the catalog."""
