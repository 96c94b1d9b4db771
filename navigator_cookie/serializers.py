"""Serializers.

Convert application values to the byte string that gets encrypted, and back.
"""
import base64
import binascii
from typing import Any
from datetime import date, datetime, time
import orjson
import jsonpickle
from jsonpickle.unpickler import loadclass
from datamodel import BaseModel
from pydantic import BaseModel as PydanticBaseModel
from .exceptions import SerializationError

_BYTES_WRAPPER_KEY = "__cookie_bytes_b64__"
_DICT_WRAPPER_KEY = "__cookie_dict__"
_RESERVED_KEYS = (_BYTES_WRAPPER_KEY, _DICT_WRAPPER_KEY)


class ModelHandler(jsonpickle.handlers.BaseHandler):
    """ModelHandler.
    This class can handle with serializable Data Models.
    """
    def flatten(self, obj, data):
        data['__dict__'] = self.context.flatten(obj.__dict__, reset=False)
        return data

    def restore(self, obj):
        mdl = loadclass(obj['py/object'])
        instance = mdl.__new__(mdl)
        instance.__dict__ = self.context.restore(obj['__dict__'], reset=False)
        return instance


class PydanticHandler(jsonpickle.handlers.BaseHandler):
    """PydanticHandler.
    Pydantic Models are dumped to JSON-compatible data and re-validated.
    """
    def flatten(self, obj, data):
        data['__model__'] = obj.model_dump(mode='json')
        return data

    def restore(self, obj):
        mdl = loadclass(obj['py/object'])
        return mdl.model_validate(obj['__model__'])

jsonpickle.handlers.registry.register(BaseModel, ModelHandler, base=True)
jsonpickle.handlers.registry.register(PydanticBaseModel, PydanticHandler, base=True)


class BaseSerializer:
    """Serializer contract: ``dumps(value) -> bytes``, ``loads(bytes) -> value``.

    Both raise SerializationError on failure.
    """
    name: str = 'base'

    def dumps(self, value: Any) -> bytes:
        raise NotImplementedError

    def loads(self, data: bytes) -> Any:
        raise NotImplementedError


class JSONSerializer(BaseSerializer):
    """JSON values through orjson.

    Supports: str, int, float, dict, list, bool, None and bytes
    (wrapped as {"__cookie_bytes_b64__": "<base64>"} at any depth).
    Dicts holding a reserved key are wrapped as {"__cookie_dict__": {...}}.
    """
    name: str = 'json'

    @staticmethod
    def _wrap_bytes(obj: Any) -> Any:
        if isinstance(obj, (bytes, bytearray)):
            return {_BYTES_WRAPPER_KEY: base64.b64encode(obj).decode("ascii")}
        raise TypeError(f"Type is not JSON serializable: {type(obj).__name__}")

    def _escape(self, obj: Any) -> Any:
        if isinstance(obj, dict):
            escaped = {k: self._escape(v) for k, v in obj.items()}
            if any(k in obj for k in _RESERVED_KEYS):
                return {_DICT_WRAPPER_KEY: escaped}
            return escaped
        if isinstance(obj, (list, tuple)):
            return [self._escape(v) for v in obj]
        return obj

    def _unwrap(self, obj: Any) -> Any:
        if isinstance(obj, dict):
            if len(obj) == 1 and _BYTES_WRAPPER_KEY in obj:
                return base64.b64decode(obj[_BYTES_WRAPPER_KEY], validate=True)
            if len(obj) == 1 and _DICT_WRAPPER_KEY in obj:
                inner = obj[_DICT_WRAPPER_KEY]
                if not isinstance(inner, dict):
                    raise TypeError("Escaped value is not an object")
                return {k: self._unwrap(v) for k, v in inner.items()}
            return {k: self._unwrap(v) for k, v in obj.items()}
        if isinstance(obj, list):
            return [self._unwrap(v) for v in obj]
        return obj

    def dumps(self, value: Any) -> bytes:
        try:
            return orjson.dumps(self._escape(value), default=self._wrap_bytes)
        except (TypeError, RecursionError, orjson.JSONEncodeError) as err:
            raise SerializationError(
                f"Value cannot be serialized to JSON: {err}"
            ) from err

    def loads(self, data: bytes) -> Any:
        try:
            return self._unwrap(orjson.loads(data))
        except (ValueError, TypeError, binascii.Error) as err:
            raise SerializationError("Payload is not valid JSON") from err


class PickleSerializer(BaseSerializer):
    """Rich values through jsonpickle.

    Accepts primitives, containers, datetimes and Data Models; any other
    object (file handles, sockets, arbitrary class instances) is refused.
    """
    name: str = 'jsonpickle'

    def _is_serializable(self, value: Any) -> bool:
        if value is None or isinstance(value, (bool, int, float, str, bytes)):
            return True
        if isinstance(value, dict):
            return all(
                isinstance(k, str) and self._is_serializable(v)
                for k, v in value.items()
            )
        if isinstance(value, (list, tuple, set, frozenset)):
            return all(self._is_serializable(v) for v in value)
        if isinstance(value, (BaseModel, PydanticBaseModel)):
            return True
        return isinstance(value, (datetime, date, time))

    def dumps(self, value: Any) -> bytes:
        if not self._is_serializable(value):
            raise SerializationError(
                f"Value of type {type(value).__name__} cannot be stored in a cookie"
            )
        try:
            return jsonpickle.encode(value).encode("utf-8")
        except Exception as err:
            raise SerializationError(err) from err

    def loads(self, data: bytes) -> Any:
        try:
            return jsonpickle.decode(data.decode("utf-8"))
        except Exception as err:
            raise SerializationError(err) from err
