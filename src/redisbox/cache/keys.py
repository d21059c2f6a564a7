"""Cache key resolution and hashing utilities"""

import hashlib
import json
from collections.abc import Mapping
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, ValidationError

from redisbox.cache.errors import InvalidKeyError, InvalidSegmentNameError


class StructuredKey(BaseModel):
    """Key with an explicit namespace and segment

    Missing (or empty) namespace and segment fall back to the backend's
    configured partition and segment.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    namespace: str | None = None
    segment: str | None = None


# A bare identifier string, a StructuredKey, or a mapping with the same fields
CacheKey = str | StructuredKey | Mapping[str, Any]


class ResolvedAddress(NamedTuple):
    """Concrete (namespace, segment, id) triple addressing a record"""

    namespace: str
    segment: str
    id: str

    @property
    def storage_key(self) -> str:
        """Key the record is stored under

        Components are joined with ``:``; a ``\\`` or ``:`` inside a component
        is escaped with a backslash, so distinct addresses never share a key.
        """
        return ":".join(_escape(part) for part in self)


def _escape(part: str) -> str:
    return part.replace("\\", "\\\\").replace(":", "\\:")


def validate_segment_name(name: Any) -> InvalidSegmentNameError | None:
    """Validate a segment name

    Args:
        name: Candidate segment name

    Returns:
        None if valid, otherwise an InvalidSegmentNameError
    """
    if name is not None and not isinstance(name, str):
        return InvalidSegmentNameError("Segment name must be a string")

    if not name:
        return InvalidSegmentNameError("Empty string")

    if "\0" in name:
        return InvalidSegmentNameError("Includes null character")

    return None


class KeyRouter:
    """Resolves cache keys against configured defaults"""

    def __init__(self, partition: str, segment: str):
        self.partition = partition
        self.segment = segment

    def resolve(self, key: Any) -> ResolvedAddress | InvalidKeyError:
        """Resolve a cache key to a store address

        Invalid keys are returned as an InvalidKeyError rather than raised.

        Args:
            key: Bare identifier string, StructuredKey or mapping

        Returns:
            The resolved address, or an InvalidKeyError
        """
        if isinstance(key, str):
            structured = StructuredKey(id=key)
        elif isinstance(key, StructuredKey):
            structured = key
        elif isinstance(key, Mapping):
            try:
                structured = StructuredKey.model_validate(dict(key))
            except ValidationError as e:
                return InvalidKeyError(f"Invalid key: {e.error_count()} field error(s)")
        else:
            # None, numbers, booleans, lists and tuples
            return InvalidKeyError(f"Invalid key type: {type(key).__name__}")

        if not structured.id:
            return InvalidKeyError("Invalid key: missing id")

        return ResolvedAddress(
            namespace=structured.namespace or self.partition,
            segment=structured.segment or self.segment,
            id=structured.id,
        )

    def validate_segment_name(self, name: Any) -> InvalidSegmentNameError | None:
        return validate_segment_name(name)


def hash_dict(data: dict[str, Any]) -> str:
    """Create a deterministic hash of a dictionary

    Args:
        data: Dictionary to hash

    Returns:
        MD5 hash string
    """
    # Sort keys for deterministic ordering
    serialized = json.dumps(data, sort_keys=True, default=str)
    return hashlib.md5(serialized.encode()).hexdigest()


def hash_call(func_name: str, args: tuple[Any, ...], kwargs: dict[str, Any]) -> str:
    """Hash a function call into a cache identifier

    Args:
        func_name: Qualified name of the function
        args: Positional arguments
        kwargs: Keyword arguments

    Returns:
        Cache identifier string
    """
    return f"{func_name}:{hash_dict({'args': list(args), 'kwargs': kwargs})}"
