"""
Payload serializers.

A serializer turns an application value into bytes and back. Encryptors and
verifiers accept any object implementing the :class:`Serializer` protocol;
three implementations are built in:

- ``json``: orjson, with a base64 wrapper so ``bytes`` survive the round trip.
- ``jsonpickle``: arbitrary Python objects, including datamodel and pydantic
  models.
- ``null``: raw bytes passthrough, used for signing already-encoded data.

Security Note:
    jsonpickle can instantiate arbitrary classes on decode. It is only safe
    here because every payload is authenticated before being deserialized.
"""
import base64
from typing import Any, Protocol, Union, runtime_checkable

import orjson
import jsonpickle
from jsonpickle.unpickler import loadclass
from datamodel import BaseModel
try:
    from pydantic import BaseModel as PydanticBaseModel
except ImportError:
    PydanticBaseModel = None


_BYTES_WRAPPER_KEY = "__nav_bytes_b64__"


@runtime_checkable
class Serializer(Protocol):
    """Capability interface for payload serializers.

    ``envelope_safe`` tells whether the serializer can carry the metadata
    envelope (a plain dict) directly; serializers that cannot get the
    envelope JSON-encoded around their already-encoded output instead.
    """

    envelope_safe: bool

    def serialize(self, value: Any) -> bytes:
        ...

    def deserialize(self, data: bytes) -> Any:
        ...


class ModelHandler(jsonpickle.handlers.BaseHandler):
    """ModelHandler.
    This class can handle with serializable Data Models.
    """
    def flatten(self, obj, data):
        data['__dict__'] = self.context.flatten(obj.__dict__, reset=False)
        return data

    def restore(self, obj):
        module_and_type = obj['py/object']
        mdl = loadclass(module_and_type)
        cls = mdl.__new__(mdl) if hasattr(mdl, '__new__') else object.__new__(mdl)
        cls.__dict__ = self.context.restore(obj['__dict__'], reset=False)
        return cls

jsonpickle.handlers.registry.register(BaseModel, ModelHandler, base=True)

if PydanticBaseModel:
    class PydanticHandler(jsonpickle.handlers.BaseHandler):
        """PydanticHandler.
        Pydantic models are rebuilt through validation, so field sets and
        private state are restored consistently.
        """
        def flatten(self, obj, data):
            data['fields'] = self.context.flatten(
                obj.model_dump(mode='json'), reset=False
            )
            return data

        def restore(self, obj):
            mdl = loadclass(obj['py/object'])
            return mdl.model_validate(
                self.context.restore(obj['fields'], reset=False)
            )

    jsonpickle.handlers.registry.register(PydanticBaseModel, PydanticHandler, base=True)


def _default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return {_BYTES_WRAPPER_KEY: base64.b64encode(bytes(value)).decode("ascii")}
    raise TypeError(f"Type is not JSON serializable: {type(value).__name__}")


def _restore_bytes(value: Any) -> Any:
    if isinstance(value, dict):
        if len(value) == 1 and _BYTES_WRAPPER_KEY in value:
            return base64.b64decode(value[_BYTES_WRAPPER_KEY])
        return {k: _restore_bytes(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_restore_bytes(v) for v in value]
    return value


class JSONSerializer:
    """orjson-based serializer.

    Supports: str, int, float, dict, list, bytes, bool, None (plus whatever
    orjson natively encodes, such as datetimes, which come back as strings).
    """

    name = "json"
    envelope_safe = True

    def serialize(self, value: Any) -> bytes:
        return orjson.dumps(value, default=_default)

    def deserialize(self, data: bytes) -> Any:
        return _restore_bytes(orjson.loads(data))


class JsonPickleSerializer:
    """jsonpickle-based serializer for rich Python objects."""

    name = "jsonpickle"
    envelope_safe = True

    def serialize(self, value: Any) -> bytes:
        return jsonpickle.encode(value).encode("utf-8")

    def deserialize(self, data: bytes) -> Any:
        return jsonpickle.decode(data.decode("utf-8"))


class NullSerializer:
    """Passthrough serializer: values must already be bytes (or text)."""

    name = "null"
    envelope_safe = False

    def serialize(self, value: Any) -> bytes:
        if isinstance(value, str):
            return value.encode("utf-8")
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value)
        raise TypeError(
            f"NullSerializer only accepts bytes or str, got {type(value).__name__}"
        )

    def deserialize(self, data: bytes) -> Any:
        return data


SERIALIZERS: dict[str, type] = {
    "json": JSONSerializer,
    "jsonpickle": JsonPickleSerializer,
    "null": NullSerializer,
}


def get_serializer(serializer: Union[str, Serializer]) -> Serializer:
    """Resolve a serializer name to an instance, or pass an instance through.

    Raises:
        ValueError: Unknown serializer name, or an object lacking
            ``serialize``/``deserialize``.
    """
    if isinstance(serializer, str):
        try:
            return SERIALIZERS[serializer.lower()]()
        except KeyError:
            raise ValueError(
                f"Unsupported serializer: {serializer!r} "
                f"(available: {sorted(SERIALIZERS)})"
            ) from None
    if not (
        callable(getattr(serializer, "serialize", None))
        and callable(getattr(serializer, "deserialize", None))
    ):
        raise ValueError(
            f"{serializer!r} does not implement serialize()/deserialize()"
        )
    return serializer
