"""
Binary codec for the DB3 SDK.

This module converts between Python values and the bytes a storage node
expects:
- Hex boundary for database addresses (from_hex / to_hex)
- Documents as BSON (encode_document / decode_document)
- Mutations as protobuf (encode_mutation / decode_mutation)

Invariants:
    - encode_mutation is deterministic: equal descriptors give equal bytes,
      which matters because the bytes are what gets signed
    - decode_document(encode_document(v)) == v for every supported value
    - Failures raise SerializationError and never return partial output
    - Everything here is pure and safe to call concurrently

Supported document values:
    None, bool, int (signed 64-bit), float, str, bytes, list, and mappings
    with str keys, nested to any depth. The top-level value must be a
    mapping. Tuples encode as lists; bytearray and memoryview as bytes.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from enum import Enum
from typing import Any

import bson
from bson.errors import BSONError
from google.protobuf.message import DecodeError, EncodeError

from . import _proto
from .errors import InvalidArgumentError, SerializationError
from .schema import (
    CollectionMutation,
    DocumentMask,
    DocumentMutation,
    Index,
    IndexType,
    Mutation,
    MutationAction,
)

ADDRESS_SIZE = 20

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]*")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def from_hex(value: str, size: int | None = None) -> bytes:
    """Decode a hex string, with or without a 0x prefix.

    Args:
        value: Hex string
        size: Required decoded length in bytes, if any

    Returns:
        Decoded bytes

    Raises:
        InvalidArgumentError: On non-hex characters, odd length or wrong size
    """
    if not isinstance(value, str):
        raise InvalidArgumentError(
            f"Expected a hex string, got {type(value).__name__}", argument="hex"
        )

    digits = value[2:] if value[:2] in ("0x", "0X") else value
    if not _HEX_DIGITS.fullmatch(digits):
        raise InvalidArgumentError(f"'{value}' is not a hex string", argument="hex")
    if len(digits) % 2:
        raise InvalidArgumentError(f"'{value}' has an odd number of hex digits", argument="hex")

    data = bytes.fromhex(digits)
    if size is not None and len(data) != size:
        raise InvalidArgumentError(
            f"Expected {size} bytes, '{value}' decodes to {len(data)}", argument="hex"
        )
    return data


def to_hex(data: bytes) -> str:
    """Encode bytes as a 0x-prefixed lowercase hex string."""
    return "0x" + bytes(data).hex()


def parse_address(value: str) -> bytes:
    """Decode a database address from its external hex form."""
    return from_hex(value, size=ADDRESS_SIZE)


class ValueKind(Enum):
    """Value types a document may contain."""

    NULL = "null"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    BYTES = "bytes"
    SEQUENCE = "sequence"
    MAPPING = "mapping"


def value_kind(value: Any) -> ValueKind:
    """Classify a Python value as a document value kind.

    Raises:
        SerializationError: If the value is not representable
    """
    if value is None:
        return ValueKind.NULL
    # bool is an int subclass; check it first
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, int):
        return ValueKind.INT
    if isinstance(value, float):
        return ValueKind.FLOAT
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ValueKind.BYTES
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    if isinstance(value, (list, tuple)):
        return ValueKind.SEQUENCE
    raise SerializationError(f"Unsupported document value type: {type(value).__name__}")


def _normalize(value: Any, path: str, active: set[int]) -> Any:
    """Return a plain copy of value, checking every node against ValueKind."""
    try:
        kind = value_kind(value)
    except SerializationError as e:
        raise SerializationError(f"{e.message} at {path}", path=path) from None

    if kind is ValueKind.INT:
        if not _INT64_MIN <= value <= _INT64_MAX:
            raise SerializationError(f"Integer at {path} does not fit in 64 bits", path=path)
        return int(value)
    if kind is ValueKind.BYTES:
        return bytes(value)
    if kind not in (ValueKind.MAPPING, ValueKind.SEQUENCE):
        return value

    marker = id(value)
    if marker in active:
        raise SerializationError(f"Cyclic reference at {path}", path=path)
    active.add(marker)
    try:
        if kind is ValueKind.SEQUENCE:
            return [_normalize(item, f"{path}[{i}]", active) for i, item in enumerate(value)]

        result: dict[str, Any] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise SerializationError(
                    f"Mapping key {key!r} at {path} is not a string", path=path
                )
            result[key] = _normalize(item, f"{path}.{key}", active)
        return result
    finally:
        active.discard(marker)


def encode_document(value: Mapping[str, Any]) -> bytes:
    """Encode a document as BSON.

    Args:
        value: Mapping of field names to supported values

    Returns:
        BSON bytes

    Raises:
        SerializationError: If the document is not representable
    """
    if value_kind(value) is not ValueKind.MAPPING:
        raise SerializationError(
            f"A document must be a mapping, got {type(value).__name__}", path="$"
        )
    plain = _normalize(value, "$", set())
    try:
        return bson.encode(plain)
    except (BSONError, OverflowError, ValueError) as e:
        raise SerializationError(f"Failed to encode document: {e}", path="$") from e


def decode_document(data: bytes) -> dict[str, Any]:
    """Decode BSON bytes produced by encode_document.

    Raises:
        SerializationError: If the bytes are not a valid document or hold
            values outside the supported set
    """
    try:
        decoded = bson.decode(bytes(data))
    except (BSONError, OverflowError, ValueError) as e:
        raise SerializationError(f"Failed to decode document: {e}", path="$") from e
    return _normalize(decoded, "$", set())


def _mutation_to_proto(mutation: Mutation) -> Any:
    if not isinstance(mutation.action, MutationAction):
        raise SerializationError(f"Unknown mutation action: {mutation.action!r}")

    message = _proto.Mutation(
        action=mutation.action.value,
        db_address=bytes(mutation.db_address),
        db_desc=mutation.db_desc,
    )
    for collection in mutation.collection_mutations:
        message.collection_mutations.add(
            collection_name=collection.collection_name,
            index=[
                _proto.Index(path=index.path, index_type=index.index_type.value)
                for index in collection.indexes
            ],
        )
    for document in mutation.document_mutations:
        message.document_mutations.add(
            collection_name=document.collection_name,
            documents=list(document.documents),
            ids=list(document.ids),
            masks=[_proto.DocumentMask(fields=list(mask.fields)) for mask in document.masks],
        )
    return message


def encode_mutation(mutation: Mutation) -> bytes:
    """Encode a mutation descriptor to canonical protobuf bytes.

    Raises:
        SerializationError: If a field holds a value of the wrong type
    """
    try:
        message = _mutation_to_proto(mutation)
        return message.SerializeToString(deterministic=True)
    except (EncodeError, TypeError, ValueError, AttributeError) as e:
        raise SerializationError(f"Failed to encode mutation: {e}") from e


def decode_mutation(data: bytes) -> Mutation:
    """Decode protobuf bytes into a mutation descriptor.

    Raises:
        SerializationError: If the bytes are corrupt or name an unknown action
    """
    try:
        message = _proto.Mutation.FromString(bytes(data))
        action = MutationAction(message.action)
        collections = tuple(
            CollectionMutation(
                collection_name=c.collection_name,
                indexes=tuple(Index(i.path, IndexType(i.index_type)) for i in c.index),
            )
            for c in message.collection_mutations
        )
    except (DecodeError, ValueError, InvalidArgumentError) as e:
        raise SerializationError(f"Failed to decode mutation: {e}") from e

    documents = tuple(
        DocumentMutation(
            collection_name=d.collection_name,
            documents=tuple(d.documents),
            ids=tuple(d.ids),
            masks=tuple(DocumentMask(tuple(m.fields)) for m in d.masks),
        )
        for d in message.document_mutations
    )
    return Mutation(
        action=action,
        db_address=bytes(message.db_address),
        db_desc=message.db_desc,
        collection_mutations=collections,
        document_mutations=documents,
    )
