"""
Mutation builders for the DB3 SDK.

One function per mutation kind. Each validates its own arguments and
returns an immutable Mutation descriptor; nothing here touches the network.

Example:
    >>> mutation = build_add_document(db_addr, "todos", {"text": "buy milk", "done": False})
    >>> payload = encode_mutation(mutation)

Invariants:
    - Invalid input raises InvalidArgumentError before any encoding
    - Documents are encoded at build time, so an unrepresentable document
      raises SerializationError here rather than at submission
    - Builders are pure and safe to call concurrently
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from .codec import encode_document, parse_address
from .errors import InvalidArgumentError
from .schema import (
    CollectionMutation,
    DocumentMask,
    DocumentMutation,
    Index,
    Mutation,
    MutationAction,
)

logger = logging.getLogger(__name__)


def _require_name(collection_name: str) -> str:
    if not isinstance(collection_name, str) or not collection_name:
        raise InvalidArgumentError("Collection name cannot be empty", argument="collection_name")
    return collection_name


def _require_ids(ids: Iterable[str]) -> tuple[str, ...]:
    if isinstance(ids, str):
        raise InvalidArgumentError("ids must be a list of document ids, not a string", argument="ids")
    result = tuple(ids)
    if not result:
        raise InvalidArgumentError("At least one document id is required", argument="ids")
    for doc_id in result:
        if not isinstance(doc_id, str) or not doc_id:
            raise InvalidArgumentError(f"Invalid document id: {doc_id!r}", argument="ids")
    return result


def build_create_database(description: str = "") -> Mutation:
    """Build a mutation that creates a document database.

    The storage node assigns the address and returns it in the response.
    """
    return Mutation(action=MutationAction.CREATE_DOCUMENT_DB, db_desc=description)


def build_add_collection(
    database_address: str,
    collection_name: str,
    indexes: Iterable[Index] = (),
) -> Mutation:
    """Build a mutation that adds a collection to a database.

    Args:
        database_address: Database address as hex
        collection_name: Name, unique within the database
        indexes: Index definitions, in order

    Raises:
        InvalidArgumentError: Bad address, empty name, or a non-Index entry
    """
    address = parse_address(database_address)
    _require_name(collection_name)

    index_defs = tuple(indexes)
    for index in index_defs:
        if not isinstance(index, Index):
            raise InvalidArgumentError(
                f"Expected Index, got {type(index).__name__}", argument="indexes"
            )

    return Mutation(
        action=MutationAction.ADD_COLLECTION,
        db_address=address,
        collection_mutations=(CollectionMutation(collection_name, index_defs),),
    )


def build_add_document(
    database_address: str,
    collection_name: str,
    document: Mapping[str, Any],
) -> Mutation:
    """Build a mutation that adds a document to a collection.

    Raises:
        InvalidArgumentError: Bad address or empty collection name
        SerializationError: The document is not representable
    """
    address = parse_address(database_address)
    _require_name(collection_name)

    return Mutation(
        action=MutationAction.ADD_DOCUMENT,
        db_address=address,
        document_mutations=(
            DocumentMutation(
                collection_name=collection_name,
                documents=(encode_document(document),),
            ),
        ),
    )


def build_update_document(
    database_address: str,
    collection_name: str,
    document: Mapping[str, Any],
    id: str,
    mask_fields: Iterable[str] = (),
) -> Mutation:
    """Build a mutation that updates one document.

    Only the top-level fields named in ``mask_fields`` are overwritten.

    Note:
        An empty ``mask_fields`` is sent as an empty mask, which the storage
        node treats as a full-document replace: fields missing from
        ``document`` are dropped. The client does not guard against this.

    Raises:
        InvalidArgumentError: Bad address, empty collection name or empty id
        SerializationError: The document is not representable
    """
    address = parse_address(database_address)
    _require_name(collection_name)
    if not isinstance(id, str) or not id:
        raise InvalidArgumentError("Document id cannot be empty", argument="id")

    fields = tuple(mask_fields)
    if not fields:
        logger.debug(f"Update of {collection_name}/{id} has an empty mask; node will replace the document")

    return Mutation(
        action=MutationAction.UPDATE_DOCUMENT,
        db_address=address,
        document_mutations=(
            DocumentMutation(
                collection_name=collection_name,
                documents=(encode_document(document),),
                ids=(id,),
                masks=(DocumentMask(fields),),
            ),
        ),
    )


def build_delete_document(
    database_address: str,
    collection_name: str,
    ids: Iterable[str],
) -> Mutation:
    """Build a mutation that deletes documents by id.

    Raises:
        InvalidArgumentError: Bad address, empty collection name or no ids
    """
    address = parse_address(database_address)
    _require_name(collection_name)

    return Mutation(
        action=MutationAction.DELETE_DOCUMENT,
        db_address=address,
        document_mutations=(
            DocumentMutation(collection_name=collection_name, ids=_require_ids(ids)),
        ),
    )
