"""
Error types for the DB3 client SDK.

This module defines all exception types raised by the SDK:
- Db3Error: Base exception
- InvalidArgumentError: Malformed caller input
- SerializationError: Document or mutation cannot be encoded/decoded
- NotInitializedError: Nonce used before it was synced
- MutationRejectedError: Storage node declined the mutation
- NonceConflictError: Node-side nonce diverged from the local one
- TransportError: No interpretable response from the node

Invariants:
    - All errors inherit from Db3Error
    - InvalidArgumentError and SerializationError are raised before any
      network work is attempted
    - Nothing in the SDK retries automatically; every error reaches the caller
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class Db3Error(Exception):
    """Base exception for all DB3 SDK errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "DB3_ERROR"
        self.details = details or {}


class InvalidArgumentError(Db3Error):
    """Caller input is malformed.

    Raised when:
    - A database address is not valid hex or has the wrong length
    - A required field (collection name, document id) is empty
    - A nonce value is negative or not a decimal integer
    """

    def __init__(
        self,
        message: str,
        argument: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="INVALID_ARGUMENT",
            details={"argument": argument},
        )
        self.argument = argument


class SerializationError(Db3Error):
    """A document or mutation cannot be encoded or decoded.

    Raised when:
    - A document contains a cycle
    - A document contains a value type outside the supported set
    - Encoded bytes are corrupt
    """

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="SERIALIZATION_ERROR",
            details={"path": path},
        )
        self.path = path


class NotInitializedError(Db3Error):
    """The nonce was used before being synced from the storage node."""

    def __init__(self, message: str = "Nonce has not been synced; call sync_nonce() first") -> None:
        super().__init__(message, code="NOT_INITIALIZED")


class MutationRejectedError(Db3Error):
    """The storage node declined the mutation.

    The local nonce is left untouched, so resubmitting reuses it.

    Attributes:
        status: Non-zero response code from the node
        mutation_id: Identifier returned with the rejection, if any
    """

    def __init__(
        self,
        status: int,
        message: str = "",
        mutation_id: str = "",
    ) -> None:
        super().__init__(
            message or f"Mutation rejected with code {status}",
            code="MUTATION_REJECTED",
            details={"status": status, "mutation_id": mutation_id},
        )
        self.status = status
        self.mutation_id = mutation_id


class NonceConflictError(Db3Error):
    """The node expected a different nonce than the one submitted.

    Usually means an earlier submission was accepted but its response was
    lost. Resync the nonce and inspect remote state before retrying.

    Attributes:
        local_nonce: Nonce the client submitted
        status: Response code from the node
    """

    def __init__(
        self,
        local_nonce: str,
        status: int,
        message: str = "",
    ) -> None:
        super().__init__(
            message or f"Nonce {local_nonce} was not accepted by the storage node",
            code="NONCE_CONFLICT",
            details={"local_nonce": local_nonce, "status": status},
        )
        self.local_nonce = local_nonce
        self.status = status


class TransportError(Db3Error):
    """No interpretable response was received.

    The fate of the mutation is unknown: it may or may not have been
    applied by the node.

    Raised when:
    - The node is unreachable
    - The call exceeded its deadline
    - The response could not be parsed
    """

    def __init__(
        self,
        message: str,
        address: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="TRANSPORT_ERROR",
            details={"address": address},
        )
        self.address = address
