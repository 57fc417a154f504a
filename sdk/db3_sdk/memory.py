"""
In-memory storage node for testing.

This module provides a simple in-process stand-in for a DB3 storage node:
- Unit tests
- Integration tests
- Local development without a running node

It verifies what a real node verifies on the write path (signature,
nonce, mutation shape) and keeps databases, collections and documents in
dictionaries. It does not execute queries.

Invariants:
    - All data is lost on process exit
    - A mutation is accepted only with the sender's next expected nonce
    - Rejected mutations change nothing, including the nonce
    - Mutations are applied one at a time under an asyncio lock

How to change safely:
    - This is test-only code, changes don't affect production
    - Keep InMemoryTransport compatible with the StorageTransport protocol
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .account import Db3Account, recover_typed_data_signer
from .codec import decode_document, decode_mutation, from_hex, parse_address, to_hex
from .errors import Db3Error, TransportError
from .schema import Index, Mutation, MutationAction
from .transport import (
    ExtraItem,
    MutationResponse,
    ResponseCode,
    build_typed_request,
    decode_typed_request,
    encode_typed_request,
)

logger = logging.getLogger(__name__)


class _Rejected(Exception):
    """Mutation failed validation against node state."""


@dataclass
class InMemoryCollection:
    """Collection storage."""
    name: str
    indexes: Tuple[Index, ...] = ()
    documents: Dict[str, Dict[str, Any]] = field(default_factory=dict)


@dataclass
class InMemoryDatabase:
    """Database storage."""
    address: bytes
    owner: str
    description: str = ""
    collections: Dict[str, InMemoryCollection] = field(default_factory=dict)


class InMemoryStorageNode:
    """In-process DB3 storage node for testing.

    Attributes:
        mutations: Accepted (mutation_id, sender, Mutation) in order

    Example:
        >>> node = InMemoryStorageNode()
        >>> transport = InMemoryTransport(node, account)
        >>> async with Db3Client(account=account, transport=transport) as client:
        ...     mutation_id, db_addr = await client.create_database("demo")
    """

    def __init__(self) -> None:
        self._nonces: Dict[str, int] = defaultdict(int)
        self._databases: Dict[bytes, InMemoryDatabase] = {}
        self._lock = asyncio.Lock()
        self._block = 0
        self._next_document_id = 1
        self.mutations: List[Tuple[str, str, Mutation]] = []

    async def get_nonce(self, address: str) -> str:
        """Next nonce expected from an address."""
        return str(self._nonces[address.lower()])

    async def send_mutation(self, payload: bytes, signature: str) -> MutationResponse:
        """Verify, sequence and apply a signed typed-data mutation.

        Args:
            payload: Compact JSON of the EIP-712 typed data
            signature: Hex signature over the typed data

        Returns:
            MutationResponse (code 0 on acceptance)
        """
        try:
            typed_data = decode_typed_request(payload)
            message = typed_data["message"]
            nonce_text = message["nonce"]
            mutation_bytes = from_hex(message["payload"])
        except (ValueError, KeyError, TypeError, Db3Error) as e:
            return self._reject(f"malformed request: {e}")

        try:
            sender = recover_typed_data_signer(typed_data, signature).lower()
        except Exception as e:
            return self._reject(f"bad signature: {e}")

        if not (isinstance(nonce_text, str) and nonce_text.isascii() and nonce_text.isdigit()):
            return self._reject(f"bad nonce format: {nonce_text!r}")

        async with self._lock:
            expected = self._nonces[sender]
            if int(nonce_text) != expected:
                logger.debug(f"Nonce mismatch for {sender}: expected {expected}, got {nonce_text}")
                return MutationResponse(
                    code=ResponseCode.NONCE_MISMATCH,
                    message=f"bad nonce: expected {expected}, got {nonce_text}",
                )

            try:
                mutation = decode_mutation(mutation_bytes)
                items = self._apply(sender, int(nonce_text), mutation)
            except (_Rejected, Db3Error) as e:
                return self._reject(str(e))

            self._nonces[sender] = expected + 1
            self._block += 1
            mutation_id = to_hex(hashlib.sha256(payload).digest())
            self.mutations.append((mutation_id, sender, mutation))

        logger.debug(
            "Mutation applied in memory",
            extra={"mutation_id": mutation_id, "sender": sender, "action": mutation.action.name},
        )
        return MutationResponse(
            code=ResponseCode.OK,
            id=mutation_id,
            items=items,
            block=self._block,
            order=0,
        )

    def _reject(self, message: str) -> MutationResponse:
        logger.debug(f"Mutation rejected in memory: {message}")
        return MutationResponse(code=ResponseCode.REJECTED, message=message)

    def _apply(self, sender: str, nonce: int, mutation: Mutation) -> Tuple[ExtraItem, ...]:
        action = mutation.action
        if action is MutationAction.CREATE_DOCUMENT_DB:
            return self._create_database(sender, nonce, mutation)
        if action is MutationAction.ADD_COLLECTION:
            return self._add_collections(mutation)
        if action is MutationAction.ADD_DOCUMENT:
            return self._add_documents(mutation)
        if action is MutationAction.UPDATE_DOCUMENT:
            return self._update_documents(mutation)
        if action is MutationAction.DELETE_DOCUMENT:
            return self._delete_documents(mutation)
        raise _Rejected(f"unsupported action {action}")

    def _create_database(self, sender: str, nonce: int, mutation: Mutation) -> Tuple[ExtraItem, ...]:
        address = hashlib.sha256(f"{sender}:{nonce}".encode()).digest()[:20]
        self._databases[address] = InMemoryDatabase(
            address=address, owner=sender, description=mutation.db_desc
        )
        return (ExtraItem(key="db_addr", value=to_hex(address)),)

    def _database(self, address: bytes) -> InMemoryDatabase:
        database = self._databases.get(address)
        if database is None:
            raise _Rejected(f"database {to_hex(address)} does not exist")
        return database

    def _collection(self, database: InMemoryDatabase, name: str) -> InMemoryCollection:
        collection = database.collections.get(name)
        if collection is None:
            raise _Rejected(f"collection '{name}' does not exist")
        return collection

    def _add_collections(self, mutation: Mutation) -> Tuple[ExtraItem, ...]:
        database = self._database(mutation.db_address)
        names = [c.collection_name for c in mutation.collection_mutations]
        if not names:
            raise _Rejected("no collection to add")
        for name in names:
            if not name:
                raise _Rejected("collection name cannot be empty")
            if name in database.collections or names.count(name) > 1:
                raise _Rejected(f"collection '{name}' already exists")

        for c in mutation.collection_mutations:
            database.collections[c.collection_name] = InMemoryCollection(
                name=c.collection_name, indexes=c.indexes
            )
        return tuple(ExtraItem(key="collection", value=name) for name in names)

    def _add_documents(self, mutation: Mutation) -> Tuple[ExtraItem, ...]:
        database = self._database(mutation.db_address)
        staged = []
        for dm in mutation.document_mutations:
            collection = self._collection(database, dm.collection_name)
            staged.extend((collection, decode_document(doc)) for doc in dm.documents)
        if not staged:
            raise _Rejected("no document to add")

        items = []
        for collection, document in staged:
            doc_id = str(self._next_document_id)
            self._next_document_id += 1
            collection.documents[doc_id] = document
            items.append(ExtraItem(key="document", value=doc_id))
        return tuple(items)

    def _update_documents(self, mutation: Mutation) -> Tuple[ExtraItem, ...]:
        database = self._database(mutation.db_address)
        staged = []
        for dm in mutation.document_mutations:
            collection = self._collection(database, dm.collection_name)
            if not (len(dm.ids) == len(dm.documents) == len(dm.masks)):
                raise _Rejected("ids, documents and masks must have the same length")
            for doc_id, doc, mask in zip(dm.ids, dm.documents, dm.masks):
                if doc_id not in collection.documents:
                    raise _Rejected(f"document '{doc_id}' does not exist")
                staged.append((collection, doc_id, decode_document(doc), mask.fields))

        for collection, doc_id, document, fields in staged:
            if not fields:
                collection.documents[doc_id] = document
                continue
            current = collection.documents[doc_id]
            for name in fields:
                if name in document:
                    current[name] = document[name]
                else:
                    current.pop(name, None)
        return ()

    def _delete_documents(self, mutation: Mutation) -> Tuple[ExtraItem, ...]:
        database = self._database(mutation.db_address)
        staged = []
        for dm in mutation.document_mutations:
            collection = self._collection(database, dm.collection_name)
            for doc_id in dm.ids:
                if doc_id not in collection.documents:
                    raise _Rejected(f"document '{doc_id}' does not exist")
                staged.append((collection, doc_id))

        for collection, doc_id in staged:
            collection.documents.pop(doc_id, None)
        return ()

    # =========================================================================
    # Testing helpers
    # =========================================================================

    def get_database(self, address: str) -> Optional[InMemoryDatabase]:
        """Get a database by hex address."""
        return self._databases.get(parse_address(address))

    def get_document(self, address: str, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Get a stored document, or None."""
        database = self.get_database(address)
        if database is None or collection not in database.collections:
            return None
        return database.collections[collection].documents.get(doc_id)

    def list_documents(self, address: str, collection: str) -> Dict[str, Dict[str, Any]]:
        """All documents of a collection, keyed by id."""
        database = self.get_database(address)
        if database is None or collection not in database.collections:
            return {}
        return dict(database.collections[collection].documents)


class InMemoryTransport:
    """StorageTransport bound to an InMemoryStorageNode.

    Signs every mutation with the account, like the gRPC transport does.
    """

    def __init__(self, node: InMemoryStorageNode, account: Db3Account) -> None:
        self.node = node
        self._account = account
        self._connected = False

    @property
    def is_connected(self) -> bool:
        """Whether connect() has been called."""
        return self._connected

    async def connect(self) -> None:
        """Connect (no-op for in-memory)."""
        self._connected = True
        logger.debug("InMemoryTransport connected")

    async def close(self) -> None:
        """Disconnect. Node state is kept."""
        self._connected = False
        logger.debug("InMemoryTransport closed")

    async def send_mutation(self, payload: bytes, nonce: str) -> MutationResponse:
        if not self._connected:
            raise TransportError("Not connected", address="memory")
        typed_data = build_typed_request(payload, nonce)
        signature = self._account.sign(typed_data)
        return await self.node.send_mutation(encode_typed_request(typed_data), signature)

    async def get_nonce(self, address: str) -> str:
        if not self._connected:
            raise TransportError("Not connected", address="memory")
        return await self.node.get_nonce(address)
