"""Exceptions for drive app.

Every recoverable failure of the storage core derives from
``DriveError`` so the calling layer can map it to a protocol response.
"""


class DriveError(Exception):
    """Base class for recoverable storage core failures."""


class NotFoundError(DriveError):
    """Raised when an entity is absent or owned by another user."""


class InvalidHierarchyError(DriveError):
    """Raised when a move would create a cycle or target a missing parent."""


class BackendUnavailableError(DriveError):
    """Raised when the storage medium fails to complete an I/O request."""


class QuotaExceededError(DriveError):
    """Raised when upload would exceed user's storage quota."""

    def __init__(
        self,
        quota_bytes: int,
        used_bytes: int,
        required_bytes: int,
    ) -> None:
        """Initialize QuotaExceededError.

        Args:
            quota_bytes: Total quota limit in bytes.
            used_bytes: Currently used bytes.
            required_bytes: Bytes needed for the operation.
        """
        self.quota_bytes = quota_bytes
        self.used_bytes = used_bytes
        self.required_bytes = required_bytes

        available = max(0, quota_bytes - used_bytes)
        super().__init__(
            f'Quota exceeded: need {required_bytes} bytes, '
            f'only {available} bytes available '
            f'(quota: {quota_bytes}, used: {used_bytes})',
        )


class InconsistentNamespaceError(RuntimeError):
    """Raised when stored folder links no longer form a forest.

    This is a programming error, callers must not catch it.
    """
