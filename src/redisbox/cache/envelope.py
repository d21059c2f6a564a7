"""Envelope encoding for stored cache records

A record is stored as a flat mapping of string fields:

    primaryKey  resolved identifier
    item        JSON encoded value
    stored      write time, integer milliseconds since the epoch
    ttl         ttl in seconds as supplied by the caller
    gen         write generation, reset to 1 on every write
"""

import json
import time
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from redisbox.cache.errors import EnvelopeMalformedError, SerializationError, chain
from redisbox.cache.keys import ResolvedAddress

REQUIRED_FIELDS = ("item", "stored")


class Envelope(BaseModel):
    """A cached value together with its bookkeeping metadata"""

    model_config = ConfigDict(populate_by_name=True)

    primary_key: str = Field(alias="primaryKey")
    item: Any
    stored: int = Field(description="Write time in milliseconds since epoch")
    ttl: int = Field(description="TTL in seconds as supplied on write")
    generation: int = Field(default=1, description="Store write generation")
    expires_in: int | None = Field(
        default=None, description="Seconds until the store expires the record"
    )


def now_ms() -> int:
    """Current time in integer milliseconds since the epoch"""
    return int(time.time() * 1000)


def build_envelope(address: ResolvedAddress, value: Any, ttl: int) -> Envelope:
    """Wrap a value for storage under the given address"""
    return Envelope(primary_key=address.id, item=value, stored=now_ms(), ttl=ttl)


def encode_record(envelope: Envelope) -> dict[str, str] | SerializationError:
    """Encode an envelope into store fields

    Only values that decode back equal are accepted, so tuples, non-string
    dict keys and NaN are rejected along with cyclic structures and
    unsupported types.

    Returns:
        Field mapping, or a SerializationError if the item cannot be encoded
    """
    try:
        item = json.dumps(envelope.item)
    except (TypeError, ValueError) as e:
        return chain(SerializationError(str(e)), e)

    if json.loads(item) != envelope.item:
        return SerializationError(
            f"Value of type {type(envelope.item).__name__} does not survive JSON encoding"
        )

    return {
        "primaryKey": envelope.primary_key,
        "item": item,
        "stored": str(envelope.stored),
        "ttl": str(envelope.ttl),
        "gen": "1",
    }


def decode_record(
    address: ResolvedAddress,
    fields: Mapping[str, str],
    expires_in: int | None = None,
) -> Envelope | EnvelopeMalformedError:
    """Decode store fields into an envelope

    Args:
        address: Address the record was read from
        fields: Field mapping as returned by the store (must not be empty)
        expires_in: Remaining store TTL in seconds, None if the record never expires

    Returns:
        The envelope, or an EnvelopeMalformedError when required fields are
        missing or cannot be decoded
    """
    if any(name not in fields for name in REQUIRED_FIELDS):
        return EnvelopeMalformedError()

    try:
        return Envelope(
            primary_key=fields.get("primaryKey") or address.id,
            item=json.loads(fields["item"]),
            stored=int(fields["stored"]),
            ttl=int(fields.get("ttl", 0)),
            generation=int(fields.get("gen", 1)),
            expires_in=expires_in,
        )
    except (TypeError, ValueError) as e:
        return chain(EnvelopeMalformedError(f"Bad envelope content: {e}"), e)
