class GaitError(Exception):
    """Base exception for all expected gait errors."""

    message: str
    exit_code: int

    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code


class ConfigurationError(GaitError):
    """Configuration related errors (env vars, repository discovery)."""


class InvalidInputError(GaitError):
    """User input validation errors."""


class NotFoundError(GaitError):
    """A tracked file is missing from the working tree."""


class RevisionNotFoundError(NotFoundError):
    """A file does not exist at a given revision."""

    def __init__(self, commit_hash: str, path: str) -> None:
        super().__init__(f"'{path}' does not exist at revision {commit_hash}")
        self.commit_hash = commit_hash
        self.path = path


class SnapshotError(GaitError):
    """Snapshot content could not be turned into a Snapshot."""


class SnapshotParseError(SnapshotError):
    """Snapshot content is not valid JSON."""


class SnapshotValidationError(SnapshotError):
    """Snapshot content is valid JSON but not a structurally valid snapshot."""


class ToolFailureError(GaitError):
    """The version-control tool is missing or failed."""


class PersistenceError(GaitError):
    """The durable copy of the snapshot could not be written."""
