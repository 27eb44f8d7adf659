"""
Value types shared by every generated client.

- `AccountId`, `Hash`: 32-byte values, usable anywhere `bytes` is.
- `Ok`, `Err`: the two arms of a decoded `Result<T, E>`.
- `NO_VALUE`: what a read-only message without a return type yields.
- `ScaleType`, `Variant`, `EventEnum`: bases for emitted declarations. Each
  emitted class gets a `CODEC` class attribute wired after declaration.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar, Union

from ..errors import UnknownEventDiscriminant

if TYPE_CHECKING:  # pragma: no cover
    from .scale import Codec, Enum

T = TypeVar("T")
E = TypeVar("E")


class _Bytes32(bytes):
    LENGTH: ClassVar[int] = 32

    def __new__(cls, value: Union[bytes, bytearray, memoryview, str]):
        if isinstance(value, str):
            s = value[2:] if value.startswith(("0x", "0X")) else value
            try:
                value = bytes.fromhex(s)
            except ValueError as e:
                raise ValueError(f"{cls.__name__}: invalid hex {value!r}") from e
        raw = bytes(value)
        if len(raw) != cls.LENGTH:
            raise ValueError(f"{cls.__name__} must be {cls.LENGTH} bytes, got {len(raw)}")
        return super().__new__(cls, raw)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(0x{self.hex()})"

    def to_hex(self) -> str:
        return "0x" + self.hex()


class AccountId(_Bytes32):
    """Address of an account or contract."""


class Hash(_Bytes32):
    """32-byte hash (code hashes, storage hashes)."""


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    @property
    def is_ok(self) -> bool:
        return False

    def unwrap(self) -> Any:
        raise ValueError(f"called unwrap() on {self!r}")


class NoValue:
    """Marker returned by read-only messages that declare no return type."""

    _instance: ClassVar["NoValue | None"] = None

    def __new__(cls) -> "NoValue":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_VALUE"

    def __bool__(self) -> bool:
        return False


NO_VALUE = NoValue()


class ScaleType:
    """Base of emitted composite and variant declarations."""

    CODEC: ClassVar["Codec"]

    def encode(self) -> bytes:
        return type(self).CODEC.encode(self)

    @classmethod
    def decode(cls, data: bytes) -> Any:
        return cls.CODEC.decode(data)


class Variant(ScaleType):
    """Base of an emitted tagged union; concrete arms set INDEX."""

    CODEC: ClassVar["Enum"]
    INDEX: ClassVar[int]


class EventEnum(Variant):
    """Base of the emitted contract event union."""

    @classmethod
    def decode_event(cls, discriminant: int, payload: bytes) -> Any:
        """
        Decode one event from its discriminant and the payload that follows
        it. Raises UnknownEventDiscriminant for undeclared discriminants.
        """
        codec = cls.CODEC
        if discriminant not in codec.indices:
            raise UnknownEventDiscriminant(
                message=f"{cls.__name__} has no variant {discriminant}",
                discriminant=discriminant,
                known=codec.indices,
            )
        return codec.decode_variant(discriminant, bytes(payload))


__all__ = [
    "AccountId",
    "Hash",
    "Ok",
    "Err",
    "NoValue",
    "NO_VALUE",
    "ScaleType",
    "Variant",
    "EventEnum",
]
