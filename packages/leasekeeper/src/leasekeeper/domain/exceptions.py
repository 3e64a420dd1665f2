"""Domain exceptions.

Exception hierarchy:
- LeaseKeeperError: Base for every error raised by this package.
  - LeaseConfigError: Invalid configuration. Raised synchronously at
    construction time and never retried.
  - LeaseStoreError: A lease store operation failed permanently
    (e.g. permission denied).
    - TransientStoreError: Timeout or connectivity loss. The attempt is
      retried on the next scheduled tick.
    - VersionConflictError: A conditional write lost against another writer.
    - MalformedRecordError: A stored value could not be decoded.
"""


class LeaseKeeperError(Exception):
    """Base exception for all leasekeeper errors."""

    pass


class LeaseConfigError(LeaseKeeperError):
    """Raised when election or store configuration is invalid.

    This is the base exception for all domain-level configuration errors.
    It is raised by domain value objects (e.g., ElectionSettings) and use
    cases (e.g., ConfigParser) when configuration validation fails.

    Configuration errors are fatal: a candidate refuses to start rather
    than run with timing that breaks the lease safety argument.
    """

    pass


class LeaseStoreError(LeaseKeeperError):
    """Raised when a lease store operation fails.

    Attributes:
        message: Human-readable error description.
        key: The store key involved in the failed operation (optional).
        original_error: The underlying exception that caused the failure (optional).
    """

    def __init__(
        self,
        message: str,
        key: str | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        """Initialize LeaseStoreError.

        Args:
            message: Human-readable error description.
            key: The store key involved in the failed operation.
            original_error: The underlying exception that caused the failure.
        """
        super().__init__(message)
        self.message = message
        self.key = key
        self.original_error = original_error


class TransientStoreError(LeaseStoreError):
    """Raised when the store is unreachable or a call exceeds its timeout.

    Never changes leadership belief by itself.
    """

    pass


class VersionConflictError(LeaseStoreError):
    """Raised when a conditional write does not match the stored version.

    Also raised by create_if_absent when the key already exists.

    Attributes:
        expected_version: The version the writer expected, or None when the
            writer expected the key to be absent.
    """

    def __init__(
        self,
        message: str,
        key: str | None = None,
        expected_version: int | None = None,
    ) -> None:
        super().__init__(message, key=key)
        self.expected_version = expected_version


class MalformedRecordError(LeaseStoreError):
    """Raised when a stored lease value cannot be decoded.

    Usually means candidates with different record schemas share a key.

    Attributes:
        raw: The undecodable bytes as read from the store.
    """

    def __init__(self, message: str, key: str | None = None, raw: bytes = b"") -> None:
        super().__init__(message, key=key)
        self.raw = raw
