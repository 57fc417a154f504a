"""
DB3 Client for Python SDK.

This module provides the main client interface:
- Db3Client: Signed mutation submission to a DB3 storage node
- SubmissionResult: The node's verdict on an accepted mutation

Example:
    >>> account = Db3Account.create_from_private_key(key)
    >>> async with Db3Client("127.0.0.1:26619", account) as client:
    ...     mutation_id, db_addr = await client.create_database("todo app")
    ...     await client.create_collection(db_addr, "todos")
    ...     await client.create_document(db_addr, "todos", {"text": "buy milk", "done": False})

Invariants:
    - The nonce is synced from the node on connect(), before any submission
    - At most one submission per account is in flight; others wait
    - The nonce advances only when the node accepts (code 0)
    - Nothing is retried automatically: create is not idempotent, so only
      the caller can decide whether resubmitting is safe
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .account import Db3Account
from .codec import encode_mutation
from .config import ClientSettings
from .errors import (
    InvalidArgumentError,
    MutationRejectedError,
    NonceConflictError,
    TransportError,
)
from .mutation import (
    build_add_collection,
    build_add_document,
    build_create_database,
    build_delete_document,
    build_update_document,
)
from .nonce import NonceSequencer
from .schema import Index, Mutation
from .transport import ExtraItem, MutationResponse, ResponseCode, StorageTransport
from ._grpc_transport import GrpcStorageTransport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionResult:
    """Result of an accepted submission.

    Attributes:
        mutation_id: Identifier assigned by the node (defines order)
        nonce: Nonce the mutation was submitted with
        items: Per-mutation result items (e.g. a new database address)
        code: Response code (always 0 for a returned result)
        block: Block the mutation landed in
        order: Position inside the block
    """

    mutation_id: str
    nonce: str
    items: tuple[ExtraItem, ...] = field(default_factory=tuple)
    code: int = 0
    block: int = 0
    order: int = 0


def _is_nonce_conflict(response: MutationResponse) -> bool:
    return response.code == ResponseCode.NONCE_MISMATCH


class Db3Client:
    """Client for submitting mutations to a DB3 storage node.

    Builds, encodes and submits mutations for one account, keeping the
    account's nonce in step with the node.

    Example:
        >>> async with Db3Client("127.0.0.1:26619", account) as client:
        ...     await client.delete_document(db_addr, "todos", ["7"])
    """

    def __init__(
        self,
        address: str | None = None,
        account: Db3Account | None = None,
        *,
        transport: StorageTransport | None = None,
        settings: ClientSettings | None = None,
    ) -> None:
        """Initialize client.

        Args:
            address: Storage node address (host:port or just host);
                defaults to the settings endpoint
            account: Account that owns the nonce and signs mutations
            transport: Optional transport; a gRPC transport is built otherwise
            settings: Optional client settings (read from DB3_* env otherwise)
        """
        if account is None:
            raise InvalidArgumentError("An account is required", argument="account")

        self.account = account
        self.settings = settings or ClientSettings()

        if transport is None:
            address = address or self.settings.storage_endpoint
            port = self.settings.storage_port
            if ":" in address:
                host, port_str = address.rsplit(":", 1)
                try:
                    port = int(port_str)
                except ValueError as e:
                    raise InvalidArgumentError(
                        f"Invalid port in address '{address}'", argument="address"
                    ) from e
            else:
                host = address
            transport = GrpcStorageTransport(
                account,
                host=host,
                port=port,
                secure=self.settings.secure,
                timeout=self.settings.request_timeout,
                max_message_size=self.settings.max_message_size,
            )

        self._transport = transport
        self._sequencer = NonceSequencer(account.address)
        self._connected = False

    @property
    def transport(self) -> StorageTransport:
        """Transport in use."""
        return self._transport

    @property
    def nonce(self) -> int | None:
        """Current local nonce, or None before sync."""
        return self._sequencer.current

    async def connect(self) -> None:
        """Connect to the node and sync the account nonce."""
        if self._connected:
            return

        await self._transport.connect()
        self._connected = True
        await self.sync_nonce()

    async def close(self) -> None:
        """Close the connection."""
        if self._connected:
            await self._transport.close()
            self._connected = False

    async def __aenter__(self) -> Db3Client:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def sync_nonce(self) -> int:
        """Read the account nonce from the node and adopt it.

        Call again after NonceConflictError or TransportError before
        retrying a mutation. Waits for any in-flight submission to resolve
        before reading the node.

        Returns:
            The synced nonce

        Raises:
            TransportError: If the node did not return a usable nonce
        """
        return await self._sequencer.resync(self._fetch_remote_nonce)

    async def _fetch_remote_nonce(self) -> str:
        remote = await self._transport.get_nonce(self.account.address)
        if not (isinstance(remote, str) and remote.isascii() and remote.isdigit()):
            raise TransportError(f"Storage node returned an invalid nonce: {remote!r}")
        return remote

    def _interpret(self, response: Any) -> MutationResponse:
        """Coerce a transport response into a MutationResponse."""
        if isinstance(response, MutationResponse):
            return response
        if isinstance(response, Mapping):
            try:
                return MutationResponse.from_dict(response)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise TransportError(f"Malformed response from storage node: {e}") from e
        raise TransportError(f"Unexpected response type: {type(response).__name__}")

    async def submit(self, mutation: Mutation) -> SubmissionResult:
        """Encode and submit one mutation.

        Args:
            mutation: Descriptor from one of the build_* functions

        Returns:
            SubmissionResult for the accepted mutation

        Raises:
            SerializationError: The mutation cannot be encoded
            NotInitializedError: The nonce has not been synced
            NonceConflictError: The node expected another nonce
            MutationRejectedError: The node declined the mutation
            TransportError: No interpretable response (outcome unknown)
        """
        payload = encode_mutation(mutation)

        async with self._sequencer.lease() as nonce:
            logger.debug(
                f"Submitting {mutation.action.name} ({len(payload)} bytes) with nonce {nonce}"
            )
            try:
                response = await self._transport.send_mutation(payload, nonce)
            except TransportError:
                raise
            except Exception as e:
                raise TransportError(f"Failed to send mutation: {e}") from e

            response = self._interpret(response)

            if response.code != ResponseCode.OK:
                if _is_nonce_conflict(response):
                    logger.warning(
                        f"Nonce {nonce} rejected for {self.account.address}: {response.message}"
                    )
                    raise NonceConflictError(nonce, response.code, response.message)
                logger.warning(
                    f"{mutation.action.name} rejected with code {response.code}: {response.message}"
                )
                raise MutationRejectedError(response.code, response.message, response.id)

            self._sequencer.advance(nonce)

        return SubmissionResult(
            mutation_id=response.id,
            nonce=nonce,
            items=tuple(response.items),
            code=response.code,
            block=response.block,
            order=response.order,
        )

    async def create_database(self, description: str = "") -> tuple[str, str]:
        """Create a document database.

        Args:
            description: Free-text description

        Returns:
            Tuple of (mutation id, database address as hex)

        Raises:
            TransportError: If the node accepted but returned no address
        """
        result = await self.submit(build_create_database(description))
        if not result.items:
            raise TransportError(
                f"Mutation {result.mutation_id} was accepted but no database address was returned"
            )
        return result.mutation_id, result.items[0].value

    async def create_collection(
        self,
        database_address: str,
        name: str,
        indexes: Iterable[Index] = (),
    ) -> str:
        """Add a collection to a database.

        Returns:
            Mutation id
        """
        mutation = build_add_collection(database_address, name, indexes)
        return (await self.submit(mutation)).mutation_id

    async def create_document(
        self,
        database_address: str,
        collection: str,
        document: Mapping[str, Any],
    ) -> str:
        """Add a document to a collection.

        Returns:
            Mutation id
        """
        mutation = build_add_document(database_address, collection, document)
        return (await self.submit(mutation)).mutation_id

    async def update_document(
        self,
        database_address: str,
        collection: str,
        document: Mapping[str, Any],
        id: str,
        mask_fields: Iterable[str] = (),
    ) -> str:
        """Update a document.

        Only the fields in ``mask_fields`` are overwritten. With an empty
        ``mask_fields`` the node replaces the whole document.

        Returns:
            Mutation id
        """
        mutation = build_update_document(database_address, collection, document, id, mask_fields)
        return (await self.submit(mutation)).mutation_id

    async def delete_document(
        self,
        database_address: str,
        collection: str,
        ids: Iterable[str],
    ) -> str:
        """Delete documents by id.

        Returns:
            Mutation id
        """
        mutation = build_delete_document(database_address, collection, ids)
        return (await self.submit(mutation)).mutation_id
