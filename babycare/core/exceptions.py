"""Exceptions raised by the storage, time and backup layers.

Absence of a record is not an error: the store returns the ``NOT_FOUND``
sentinel from ``babycare.db.store`` instead.
"""


class BabyCareError(Exception):
    """Base exception for all Baby Care errors."""

    def __init__(self, message: str, details: dict | None = None):
        """Initialize exception with message and optional details.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotInitialized(BabyCareError):
    """Raised when the store engine is used before it reached the READY state."""

    pass


class SchemaError(BabyCareError):
    """Raised for a collection or index name unknown to the schema registry."""

    pass


class DuplicateKeyError(BabyCareError):
    """Raised when add() is given a caller-assigned key that already exists.

    Attributes:
        collection: Collection the add targeted
        key: The colliding primary key
    """

    collection: str
    key: object

    def __init__(self, collection: str, key):
        super().__init__(
            f"Key {key!r} already exists in collection '{collection}'",
            details={"collection": collection, "key": key},
        )
        self.collection = collection
        self.key = key


class TransactionFailed(BabyCareError):
    """Raised when the underlying storage rejected or aborted an operation.

    Attributes:
        collection: Collection the transaction was scoped to (if any)
        cause: The original exception from the driver
    """

    collection: str | None
    cause: BaseException | None

    def __init__(self, message: str, collection: str | None = None, cause: BaseException | None = None):
        super().__init__(
            message,
            details={
                "collection": collection,
                "cause": f"{type(cause).__name__}: {cause}" if cause is not None else None,
            },
        )
        self.collection = collection
        self.cause = cause


class MalformedSnapshot(BabyCareError):
    """Raised when an import payload cannot be decoded into a snapshot."""

    pass


class ChildNotFound(BabyCareError):
    """Raised at the application boundary when a record names a missing child."""

    child_id: str

    def __init__(self, child_id: str):
        super().__init__(f"Child {child_id!r} not found", details={"child_id": child_id})
        self.child_id = child_id
