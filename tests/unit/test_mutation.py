"""
Unit tests for mutation builders.

Tests cover:
- Descriptor shape for every mutation kind
- Argument validation before any encoding
- Field mask embedding on update
"""

import pytest

from db3_sdk.codec import decode_document
from db3_sdk.errors import InvalidArgumentError, SerializationError
from db3_sdk.mutation import (
    build_add_collection,
    build_add_document,
    build_create_database,
    build_delete_document,
    build_update_document,
)
from db3_sdk.schema import DocumentMask, Index, IndexType, MutationAction


class TestCreateDatabase:
    """Tests for build_create_database."""

    def test_descriptor_shape(self):
        """Address and sub-mutations are empty; description echoed."""
        mutation = build_create_database("todo app")

        assert mutation.action is MutationAction.CREATE_DOCUMENT_DB
        assert mutation.db_address == b""
        assert mutation.db_desc == "todo app"
        assert mutation.collection_mutations == ()
        assert mutation.document_mutations == ()

    def test_default_description(self):
        """Description defaults to empty."""
        assert build_create_database().db_desc == ""


class TestAddCollection:
    """Tests for build_add_collection."""

    def test_descriptor_shape(self, db_address):
        """Collection and indexes are embedded in order."""
        indexes = [Index("/owner"), Index("/rank", IndexType.INT64_KEY)]

        mutation = build_add_collection(db_address, "todos", indexes)

        assert mutation.action is MutationAction.ADD_COLLECTION
        assert mutation.db_address == b"\xab" * 20
        (collection,) = mutation.collection_mutations
        assert collection.collection_name == "todos"
        assert collection.indexes == tuple(indexes)

    def test_empty_name_rejected(self, db_address):
        """Empty collection name fails."""
        with pytest.raises(InvalidArgumentError) as exc:
            build_add_collection(db_address, "", [])
        assert exc.value.argument == "collection_name"

    def test_bad_address_rejected(self):
        """Address must decode from hex."""
        with pytest.raises(InvalidArgumentError):
            build_add_collection("not-hex", "todos", [])

    def test_short_address_rejected(self):
        """Address must be 20 bytes."""
        with pytest.raises(InvalidArgumentError):
            build_add_collection("0xabcd", "todos", [])

    def test_non_index_rejected(self, db_address):
        """Indexes must be Index instances."""
        with pytest.raises(InvalidArgumentError):
            build_add_collection(db_address, "todos", [{"path": "/owner"}])

    def test_empty_index_path_rejected(self):
        """Index paths cannot be empty."""
        with pytest.raises(InvalidArgumentError):
            Index("")


class TestAddDocument:
    """Tests for build_add_document."""

    def test_document_is_encoded(self, db_address):
        """The document is embedded as encoded bytes."""
        doc = {"text": "buy milk", "done": False}

        mutation = build_add_document(db_address, "todos", doc)

        assert mutation.action is MutationAction.ADD_DOCUMENT
        (dm,) = mutation.document_mutations
        assert dm.collection_name == "todos"
        assert dm.ids == ()
        assert dm.masks == ()
        assert decode_document(dm.documents[0]) == doc

    def test_unrepresentable_document_rejected(self, db_address):
        """Unsupported values fail at build time."""
        with pytest.raises(SerializationError):
            build_add_document(db_address, "todos", {"when": object()})

    def test_empty_collection_rejected(self, db_address):
        """Collection name is required."""
        with pytest.raises(InvalidArgumentError):
            build_add_document(db_address, "", {"text": "x"})

    def test_address_checked_before_document(self):
        """A bad address fails even with a bad document."""
        with pytest.raises(InvalidArgumentError):
            build_add_document("zz", "todos", {"when": object()})


class TestUpdateDocument:
    """Tests for build_update_document."""

    def test_mask_embedded(self, db_address):
        """Id and mask are embedded alongside the document."""
        mutation = build_update_document(db_address, "todos", {"done": True}, "7", ["done"])

        assert mutation.action is MutationAction.UPDATE_DOCUMENT
        (dm,) = mutation.document_mutations
        assert dm.ids == ("7",)
        assert dm.masks == (DocumentMask(("done",)),)
        assert decode_document(dm.documents[0]) == {"done": True}

    def test_empty_mask_sent_as_empty_mask(self, db_address):
        """No fields means one empty mask (full replace on the node)."""
        mutation = build_update_document(db_address, "todos", {"text": "x"}, "7", [])

        assert mutation.document_mutations[0].masks == (DocumentMask(()),)

    def test_empty_id_rejected(self, db_address):
        """Document id is required."""
        with pytest.raises(InvalidArgumentError):
            build_update_document(db_address, "todos", {"done": True}, "", ["done"])


class TestDeleteDocument:
    """Tests for build_delete_document."""

    def test_ids_embedded(self, db_address):
        """Ids are embedded in order with no documents."""
        mutation = build_delete_document(db_address, "todos", ["3", "1"])

        assert mutation.action is MutationAction.DELETE_DOCUMENT
        (dm,) = mutation.document_mutations
        assert dm.ids == ("3", "1")
        assert dm.documents == ()

    def test_empty_ids_rejected(self, db_address):
        """At least one id is required."""
        with pytest.raises(InvalidArgumentError) as exc:
            build_delete_document(db_address, "todos", [])
        assert exc.value.argument == "ids"

    def test_string_ids_rejected(self, db_address):
        """A bare string is not a list of ids."""
        with pytest.raises(InvalidArgumentError):
            build_delete_document(db_address, "todos", "7")

    def test_blank_id_rejected(self, db_address):
        """Empty ids are rejected."""
        with pytest.raises(InvalidArgumentError):
            build_delete_document(db_address, "todos", ["7", ""])
