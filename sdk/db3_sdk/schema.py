"""
Mutation descriptor types for the DB3 SDK.

This module provides the data model sent to a storage node:
- MutationAction: Discriminator for the closed set of mutation kinds
- Index / IndexType: Collection index definitions
- CollectionMutation: Collection to add to a database
- DocumentMutation: Documents to add, update or delete in a collection
- Mutation: The full descriptor, one per submission

Invariants:
    - Descriptors are immutable; sequences are tuples
    - A Mutation is a discriminated record, never subclassed
    - Enum values match the storage node's wire numbering

Example:
    >>> Mutation(
    ...     action=MutationAction.ADD_COLLECTION,
    ...     db_address=bytes.fromhex("ab" * 20),
    ...     collection_mutations=(CollectionMutation("todos"),),
    ... )
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .errors import InvalidArgumentError


class MutationAction(Enum):
    """Kinds of mutation understood by the storage node."""

    CREATE_DOCUMENT_DB = 1
    ADD_COLLECTION = 2
    ADD_DOCUMENT = 3
    DELETE_DOCUMENT = 4
    UPDATE_DOCUMENT = 5


class IndexType(Enum):
    """Supported index key types."""

    UNIQUE_KEY = 0
    STRING_KEY = 1
    INT64_KEY = 2
    DOUBLE_KEY = 3


@dataclass(frozen=True)
class Index:
    """Index definition on a collection.

    Attributes:
        path: Document field path the index covers (e.g. "/owner")
        index_type: Key type of the index
    """

    path: str
    index_type: IndexType = IndexType.STRING_KEY

    def __post_init__(self) -> None:
        if not self.path:
            raise InvalidArgumentError("Index path cannot be empty", argument="path")


@dataclass(frozen=True)
class CollectionMutation:
    """A collection to create inside a database.

    Attributes:
        collection_name: Name, unique within the database
        indexes: Ordered index definitions
    """

    collection_name: str
    indexes: tuple[Index, ...] = ()


@dataclass(frozen=True)
class DocumentMask:
    """Top-level fields an update overwrites.

    An empty mask asks the storage node to replace the whole document.
    """

    fields: tuple[str, ...] = ()


@dataclass(frozen=True)
class DocumentMutation:
    """Documents to write to a collection.

    Attributes:
        collection_name: Target collection
        documents: Encoded document payloads
        ids: Document ids (empty when adding)
        masks: Field masks (one per updated document)
    """

    collection_name: str
    documents: tuple[bytes, ...] = ()
    ids: tuple[str, ...] = ()
    masks: tuple[DocumentMask, ...] = ()


@dataclass(frozen=True)
class Mutation:
    """A single state-changing request against a storage node.

    Attributes:
        action: Which kind of mutation this is
        db_address: Raw database address (empty when creating a database)
        db_desc: Free-text description (database creation only)
        collection_mutations: Collections to add
        document_mutations: Document writes
    """

    action: MutationAction
    db_address: bytes = b""
    db_desc: str = ""
    collection_mutations: tuple[CollectionMutation, ...] = ()
    document_mutations: tuple[DocumentMutation, ...] = ()
