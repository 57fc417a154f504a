"""
Unit tests for the binary codec.

Tests cover:
- Hex boundary for database addresses
- Document value classification
- Document encode/decode round trips and failures
- Mutation encoding determinism and decoding
"""

import pytest

from db3_sdk.codec import (
    ValueKind,
    decode_document,
    decode_mutation,
    encode_document,
    encode_mutation,
    from_hex,
    parse_address,
    to_hex,
    value_kind,
)
from db3_sdk.errors import InvalidArgumentError, SerializationError
from db3_sdk.mutation import (
    build_add_collection,
    build_add_document,
    build_create_database,
    build_delete_document,
    build_update_document,
)
from db3_sdk.schema import Index, IndexType, Mutation, MutationAction


class TestHex:
    """Tests for from_hex / to_hex."""

    def test_decode_with_prefix(self):
        """0x prefix is accepted."""
        assert from_hex("0x0aff") == b"\x0a\xff"

    def test_decode_without_prefix(self):
        """Bare hex is accepted."""
        assert from_hex("0AfF") == b"\x0a\xff"

    def test_not_hex_rejected(self):
        """Non-hex characters fail."""
        with pytest.raises(InvalidArgumentError):
            from_hex("not-hex")

    def test_odd_length_rejected(self):
        """Odd number of digits fails."""
        with pytest.raises(InvalidArgumentError):
            from_hex("0xabc")

    def test_whitespace_rejected(self):
        """Embedded whitespace is not hex."""
        with pytest.raises(InvalidArgumentError):
            from_hex("ab cd")

    def test_wrong_size_rejected(self):
        """Size mismatch fails."""
        with pytest.raises(InvalidArgumentError):
            from_hex("0xabcd", size=20)

    def test_non_string_rejected(self):
        """Bytes are not a hex string."""
        with pytest.raises(InvalidArgumentError):
            from_hex(b"abcd")

    def test_parse_address(self):
        """Addresses are 20 bytes."""
        assert parse_address("0x" + "01" * 20) == b"\x01" * 20
        with pytest.raises(InvalidArgumentError):
            parse_address("0x" + "01" * 19)

    def test_to_hex(self):
        """Encoding is lowercase and prefixed."""
        assert to_hex(b"\x0a\xff") == "0x0aff"
        assert from_hex(to_hex(b"\x00" * 20), size=20) == b"\x00" * 20


class TestValueKind:
    """Tests for value classification."""

    @pytest.mark.parametrize(
        "value,kind",
        [
            (None, ValueKind.NULL),
            (True, ValueKind.BOOL),
            (0, ValueKind.INT),
            (1.5, ValueKind.FLOAT),
            ("x", ValueKind.STRING),
            (b"x", ValueKind.BYTES),
            (bytearray(b"x"), ValueKind.BYTES),
            ([1], ValueKind.SEQUENCE),
            ((1,), ValueKind.SEQUENCE),
            ({"a": 1}, ValueKind.MAPPING),
        ],
    )
    def test_supported_values(self, value, kind):
        """Every supported value maps to one kind."""
        assert value_kind(value) is kind

    def test_bool_is_not_int(self):
        """Booleans are classified before integers."""
        assert value_kind(False) is ValueKind.BOOL

    @pytest.mark.parametrize("value", [{1, 2}, object(), 1 + 2j])
    def test_unsupported_values(self, value):
        """Anything else is rejected."""
        with pytest.raises(SerializationError):
            value_kind(value)


class TestDocumentCodec:
    """Tests for encode_document / decode_document."""

    def test_round_trip_all_kinds(self):
        """A document using every kind decodes to itself."""
        doc = {
            "text": "buy milk",
            "done": False,
            "count": 3,
            "big": 2**62,
            "negative": -(2**63),
            "ratio": 0.25,
            "blob": b"\x00\x01\xff",
            "nothing": None,
            "tags": ["a", "b", 1, None],
            "owner": {"name": "alice", "scores": [1.5, 2.5], "meta": {}},
        }

        assert decode_document(encode_document(doc)) == doc

    def test_empty_document(self):
        """The empty document round-trips."""
        assert decode_document(encode_document({})) == {}

    def test_key_order_preserved(self):
        """Field order survives encoding."""
        doc = {"z": 1, "a": 2, "m": 3}
        assert list(decode_document(encode_document(doc))) == ["z", "a", "m"]

    def test_tuple_decodes_as_list(self):
        """Tuples are sequences."""
        assert decode_document(encode_document({"t": (1, 2)})) == {"t": [1, 2]}

    def test_encoding_is_deterministic(self):
        """Equal documents give equal bytes."""
        assert encode_document({"a": [1, {"b": b"x"}]}) == encode_document({"a": [1, {"b": b"x"}]})

    def test_shared_reference_is_not_a_cycle(self):
        """The same list may appear twice."""
        shared = [1, 2]
        doc = {"a": shared, "b": shared}
        assert decode_document(encode_document(doc)) == {"a": [1, 2], "b": [1, 2]}

    def test_cyclic_mapping_rejected(self):
        """A mapping containing itself fails."""
        doc = {"text": "loop"}
        doc["self"] = doc

        with pytest.raises(SerializationError) as exc:
            encode_document(doc)
        assert exc.value.path == "$.self"

    def test_cyclic_list_rejected(self):
        """A list containing itself fails."""
        items = [1]
        items.append(items)

        with pytest.raises(SerializationError):
            encode_document({"items": items})

    def test_unsupported_nested_value_rejected(self):
        """Unsupported values report their path."""
        with pytest.raises(SerializationError) as exc:
            encode_document({"a": [1, {"b": {1, 2}}]})
        assert exc.value.path == "$.a[1].b"

    def test_non_string_key_rejected(self):
        """Keys must be strings."""
        with pytest.raises(SerializationError):
            encode_document({1: "one"})

    def test_oversized_int_rejected(self):
        """Integers beyond 64 bits fail."""
        with pytest.raises(SerializationError):
            encode_document({"n": 2**63})

    def test_top_level_must_be_mapping(self):
        """A bare list is not a document."""
        with pytest.raises(SerializationError):
            encode_document([1, 2])

    def test_null_byte_key_rejected(self):
        """BSON keys cannot contain NUL."""
        with pytest.raises(SerializationError):
            encode_document({"a\x00b": 1})

    def test_decode_garbage_rejected(self):
        """Corrupt bytes fail to decode."""
        with pytest.raises(SerializationError):
            decode_document(b"\x05\x00\x00")


class TestMutationCodec:
    """Tests for encode_mutation / decode_mutation."""

    @pytest.fixture
    def mutations(self, db_address):
        """One mutation of every kind."""
        return [
            build_create_database("my db"),
            build_add_collection(
                db_address,
                "todos",
                [Index("/owner", IndexType.STRING_KEY), Index("/rank", IndexType.INT64_KEY)],
            ),
            build_add_document(db_address, "todos", {"text": "buy milk", "done": False}),
            build_update_document(db_address, "todos", {"done": True}, "7", ["done"]),
            build_delete_document(db_address, "todos", ["7", "8"]),
        ]

    def test_encoding_is_deterministic(self, db_address):
        """Descriptors built twice from the same arguments encode identically."""
        first = build_add_document(db_address, "todos", {"text": "buy milk", "done": False})
        second = build_add_document(db_address, "todos", {"text": "buy milk", "done": False})

        assert first is not second
        assert encode_mutation(first) == encode_mutation(second)

    def test_round_trip(self, mutations):
        """Every kind decodes back to the same descriptor."""
        for mutation in mutations:
            assert decode_mutation(encode_mutation(mutation)) == mutation

    def test_different_mutations_differ(self, mutations):
        """Distinct descriptors give distinct bytes."""
        encoded = {encode_mutation(m) for m in mutations}
        assert len(encoded) == len(mutations)

    def test_wrong_field_type_rejected(self):
        """A str where bytes are expected fails to encode."""
        mutation = Mutation(action=MutationAction.ADD_DOCUMENT, db_address="not-bytes")

        with pytest.raises(SerializationError):
            encode_mutation(mutation)

    def test_unknown_action_rejected(self):
        """Action must be a MutationAction."""
        with pytest.raises(SerializationError):
            encode_mutation(Mutation(action=3))

    def test_decode_truncated_rejected(self):
        """Truncated bytes fail to decode."""
        with pytest.raises(SerializationError):
            decode_mutation(b"\x22\x05ab")

    def test_decode_unsupported_action_rejected(self):
        """Action 0 is not a document mutation."""
        with pytest.raises(SerializationError):
            decode_mutation(b"")
