"""
Transport interface between the DB3 client and a storage node.

This module defines what the client needs from a transport:
- StorageTransport: Protocol every transport implements
- MutationResponse / ExtraItem: The node's verdict on a mutation
- ResponseCode: Well-known response codes
- build_typed_request: EIP-712 envelope signed for each mutation

Shipped implementations:
- GrpcStorageTransport (_grpc_transport): talks to a real storage node
- InMemoryTransport (memory): talks to an in-process node for tests

Invariants:
    - send_mutation performs exactly one request/response exchange
    - Transports never retry; retry policy belongs to the caller
    - A transport raises TransportError when no interpretable response arrived
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Protocol, runtime_checkable

from .codec import to_hex


class ResponseCode(IntEnum):
    """Response codes returned by the storage node."""

    OK = 0
    REJECTED = 1
    NONCE_MISMATCH = 2


@dataclass(frozen=True)
class ExtraItem:
    """Per-mutation result item (e.g. an assigned database address)."""

    key: str
    value: str


@dataclass(frozen=True)
class MutationResponse:
    """Storage node response to a mutation.

    Attributes:
        code: 0 when accepted, non-zero when rejected
        id: Mutation identifier assigned by the node (defines order)
        items: Result items
        message: Human-readable reason for a rejection
        block: Block the mutation landed in
        order: Position inside the block
    """

    code: int
    id: str = ""
    items: tuple[ExtraItem, ...] = field(default_factory=tuple)
    message: str = ""
    block: int = 0
    order: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> MutationResponse:
        """Create from a {code, id, items: [{key, value}]} mapping.

        Raises:
            KeyError: If code is missing
            TypeError, ValueError: If a field has the wrong shape
        """
        items = tuple(
            ExtraItem(key=str(item.get("key", "")), value=str(item["value"]))
            for item in data.get("items") or ()
        )
        return cls(
            code=int(data["code"]),
            id=str(data.get("id", "")),
            items=items,
            message=str(data.get("message", "")),
            block=int(data.get("block", 0)),
            order=int(data.get("order", 0)),
        )


@runtime_checkable
class StorageTransport(Protocol):
    """What the client needs from a connection to a storage node."""

    async def connect(self) -> None:
        ...

    async def close(self) -> None:
        ...

    async def send_mutation(self, payload: bytes, nonce: str) -> MutationResponse:
        """Submit an encoded mutation with its nonce."""
        ...

    async def get_nonce(self, address: str) -> str:
        """Return the next nonce the node expects from an address."""
        ...


def build_typed_request(payload: bytes, nonce: str) -> dict[str, Any]:
    """Wrap an encoded mutation in the EIP-712 message the node verifies."""
    return {
        "types": {
            "EIP712Domain": [],
            "Message": [
                {"name": "payload", "type": "bytes"},
                {"name": "nonce", "type": "string"},
            ],
        },
        "domain": {},
        "primaryType": "Message",
        "message": {
            "payload": to_hex(payload),
            "nonce": nonce,
        },
    }


def encode_typed_request(typed_data: dict[str, Any]) -> bytes:
    """Serialize typed data the way it is sent on the wire (compact JSON)."""
    return json.dumps(typed_data, separators=(",", ":")).encode("utf-8")


def decode_typed_request(data: bytes) -> dict[str, Any]:
    """Parse typed data received on the wire."""
    return json.loads(data.decode("utf-8"))
