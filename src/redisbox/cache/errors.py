"""Error taxonomy for cache operations"""


class CacheError(Exception):
    """Base class for errors reported by cache backends"""

    pass


class NotStartedError(CacheError):
    """Operation attempted before the connection was started"""

    def __init__(self, message: str = "Connection not started"):
        super().__init__(message)


class StoreConnectionError(CacheError):
    """Connecting to the backing store failed"""

    pass


class InvalidKeyError(CacheError):
    """Cache key could not be resolved to a store address"""

    def __init__(self, message: str = "Invalid key"):
        super().__init__(message)


class InvalidSegmentNameError(CacheError):
    """Segment name is empty or contains a null character"""

    pass


class ReadError(CacheError):
    """Store failed while reading a record"""

    def __init__(self, message: str = "Error getting result"):
        super().__init__(message)


class WriteError(CacheError):
    """Store failed while writing a record"""

    def __init__(self, message: str = "Error writing data"):
        super().__init__(message)


class DeleteError(CacheError):
    """Store failed while removing a record"""

    def __init__(self, message: str = "Error dropping item"):
        super().__init__(message)


class EnvelopeMalformedError(CacheError):
    """Stored record does not have the envelope shape"""

    def __init__(self, message: str = "Bad envelope content"):
        super().__init__(message)


class SerializationError(CacheError):
    """Value cannot be encoded for storage"""

    pass


def chain(error: CacheError, cause: BaseException) -> CacheError:
    """Attach the underlying exception as the cause of a reported error"""
    error.__cause__ = cause
    return error
