"""
Protobuf message classes for the DB3 storage node wire protocol.

The descriptors are assembled at import time from the message layout the
storage node speaks (mutation v2 and storage RPCs), so the SDK does not
carry protoc output.

This module is internal to the SDK. Users should not import from here.
"""

from __future__ import annotations

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "db3_proto"

_FD = descriptor_pb2.FieldDescriptorProto


def _field(
    name: str,
    number: int,
    kind: int,
    *,
    repeated: bool = False,
    type_name: str | None = None,
) -> descriptor_pb2.FieldDescriptorProto:
    field = _FD(
        name=name,
        number=number,
        type=kind,
        label=_FD.LABEL_REPEATED if repeated else _FD.LABEL_OPTIONAL,
    )
    if type_name is not None:
        field.type_name = f".{PACKAGE}.{type_name}"
    return field


def _message(name: str, *fields: descriptor_pb2.FieldDescriptorProto) -> descriptor_pb2.DescriptorProto:
    return descriptor_pb2.DescriptorProto(name=name, field=list(fields))


def _enum(name: str, *values: str) -> descriptor_pb2.EnumDescriptorProto:
    return descriptor_pb2.EnumDescriptorProto(
        name=name,
        value=[
            descriptor_pb2.EnumValueDescriptorProto(name=value, number=number)
            for number, value in enumerate(values)
        ],
    )


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    proto = descriptor_pb2.FileDescriptorProto(
        name="db3_sdk/db3.proto",
        package=PACKAGE,
        syntax="proto3",
    )
    proto.enum_type.extend([
        _enum(
            "MutationAction",
            "CreateEventDB",
            "CreateDocumentDB",
            "AddCollection",
            "AddDocument",
            "DeleteDocument",
            "UpdateDocument",
        ),
        _enum("IndexType", "UniqueKey", "StringKey", "Int64Key", "DoubleKey"),
        _enum(
            "PayloadType",
            "QueryPayload",
            "DatabasePayload",
            "MutationPayload",
            "TypedDataPayload",
        ),
    ])
    proto.message_type.extend([
        # db3_mutation_v2
        _message(
            "Index",
            _field("path", 1, _FD.TYPE_STRING),
            _field("index_type", 2, _FD.TYPE_ENUM, type_name="IndexType"),
        ),
        _message(
            "CollectionMutation",
            _field("index", 1, _FD.TYPE_MESSAGE, repeated=True, type_name="Index"),
            _field("collection_name", 2, _FD.TYPE_STRING),
        ),
        _message(
            "DocumentMask",
            _field("fields", 1, _FD.TYPE_STRING, repeated=True),
        ),
        _message(
            "DocumentMutation",
            _field("collection_name", 1, _FD.TYPE_STRING),
            _field("documents", 2, _FD.TYPE_BYTES, repeated=True),
            _field("ids", 3, _FD.TYPE_STRING, repeated=True),
            _field("masks", 4, _FD.TYPE_MESSAGE, repeated=True, type_name="DocumentMask"),
        ),
        _message(
            "Mutation",
            _field("action", 1, _FD.TYPE_ENUM, type_name="MutationAction"),
            _field(
                "collection_mutations", 2, _FD.TYPE_MESSAGE,
                repeated=True, type_name="CollectionMutation",
            ),
            _field(
                "document_mutations", 3, _FD.TYPE_MESSAGE,
                repeated=True, type_name="DocumentMutation",
            ),
            _field("db_address", 4, _FD.TYPE_BYTES),
            _field("db_desc", 5, _FD.TYPE_STRING),
        ),
        # db3_storage
        _message(
            "SendMutationRequest",
            _field("payload", 1, _FD.TYPE_BYTES),
            _field("signature", 2, _FD.TYPE_STRING),
            _field("payload_type", 3, _FD.TYPE_ENUM, type_name="PayloadType"),
        ),
        _message(
            "ExtraItem",
            _field("key", 1, _FD.TYPE_STRING),
            _field("value", 2, _FD.TYPE_STRING),
        ),
        _message(
            "SendMutationResponse",
            _field("id", 1, _FD.TYPE_STRING),
            _field("code", 2, _FD.TYPE_INT32),
            _field("items", 3, _FD.TYPE_MESSAGE, repeated=True, type_name="ExtraItem"),
            _field("block", 4, _FD.TYPE_UINT64),
            _field("order", 5, _FD.TYPE_UINT32),
        ),
        _message(
            "GetNonceRequest",
            _field("address", 1, _FD.TYPE_STRING),
        ),
        _message(
            "GetNonceResponse",
            _field("nonce", 1, _FD.TYPE_UINT64),
        ),
    ])
    return proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_file().SerializeToString())


def _message_class(name: str):
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PACKAGE}.{name}"))


Index = _message_class("Index")
CollectionMutation = _message_class("CollectionMutation")
DocumentMask = _message_class("DocumentMask")
DocumentMutation = _message_class("DocumentMutation")
Mutation = _message_class("Mutation")
SendMutationRequest = _message_class("SendMutationRequest")
ExtraItem = _message_class("ExtraItem")
SendMutationResponse = _message_class("SendMutationResponse")
GetNonceRequest = _message_class("GetNonceRequest")
GetNonceResponse = _message_class("GetNonceResponse")

__all__ = [
    "Index",
    "CollectionMutation",
    "DocumentMask",
    "DocumentMutation",
    "Mutation",
    "SendMutationRequest",
    "ExtraItem",
    "SendMutationResponse",
    "GetNonceRequest",
    "GetNonceResponse",
]
