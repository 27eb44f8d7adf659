"""
SCALE codec combinators for generated contract clients.

Generated modules describe every argument, return value and event field as a
tree of `Codec` objects built from the constants and classes below, e.g.

    scale.Seq(scale.Tuple((scale.ACCOUNT_ID, scale.U128)))

Wire format (little-endian, no padding, no alignment)
-----------------------------------------------------
- bool:               1 byte, 0x00 / 0x01
- uN / iN:            N/8 bytes, two's complement for signed
- compact:            2-bit mode in the low bits of the first byte
                        0b00  value < 2**6          (1 byte)
                        0b01  value < 2**14         (2 bytes)
                        0b10  value < 2**30         (4 bytes)
                        0b11  big-integer mode: upper six bits = len - 4,
                              followed by `len` little-endian bytes
- str:                compact(len) || UTF-8
- char:               u32 code point
- Vec<T>:             compact(count) || items     (Vec<u8> → bytes)
- [T; n]:             items, no prefix            ([u8; n] → bytes)
- tuples, structs:    fields concatenated in declaration order
- enums:              u8 variant index || variant fields
- Option<T>:          0x00 | 0x01 || T
- Result<T, E>:       0x00 || T  |  0x01 || E

Decoding is strict: compact integers must use their minimal mode and
`Codec.decode` rejects trailing bytes unless `strict=False`.
"""

from __future__ import annotations

import typing as t
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Type

from ..errors import DecodeError, EncodeError
from .types import AccountId, Err, Hash, Ok

__all__ = [
    "Codec",
    "Int",
    "Compact",
    "FixedBytes",
    "Seq",
    "Array",
    "Tuple",
    "Option",
    "Result",
    "Struct",
    "Enum",
    "Ref",
    "encode_args",
    "BOOL",
    "U8",
    "U16",
    "U32",
    "U64",
    "U128",
    "U256",
    "I8",
    "I16",
    "I32",
    "I64",
    "I128",
    "I256",
    "STR",
    "CHAR",
    "BYTES",
    "COMPACT",
    "UNIT",
    "ACCOUNT_ID",
    "HASH",
]

_BYTES_TYPES = (bytes, bytearray, memoryview)
_MAX_ZERO_SIZED = 1 << 20


# ──────────────────────────────────────────────────────────────────────────────
# Base
# ──────────────────────────────────────────────────────────────────────────────


class Codec:
    """A SCALE encoder/decoder for one type."""

    __slots__ = ()

    def encode_into(self, value: Any, out: bytearray) -> None:
        raise NotImplementedError

    def decode_from(self, buf: bytes, offset: int) -> t.Tuple[Any, int]:
        """Decode one value at buf[offset:]; returns (value, new_offset)."""
        raise NotImplementedError

    def encode(self, value: Any) -> bytes:
        out = bytearray()
        self.encode_into(value, out)
        return bytes(out)

    def decode(self, data: bytes, *, strict: bool = True) -> Any:
        buf = bytes(data)
        value, end = self.decode_from(buf, 0)
        if strict and end != len(buf):
            raise DecodeError(f"{len(buf) - end} trailing bytes after {self!r}", offset=end)
        return value


def _read_exact(buf: bytes, offset: int, n: int) -> t.Tuple[bytes, int]:
    end = offset + n
    if end > len(buf):
        raise DecodeError(f"truncated payload: need {n} bytes, have {len(buf) - offset}", offset=offset)
    return buf[offset:end], end


def _expect_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodeError(f"expected int, got {type(value).__name__}", value)
    return value


def _expect_bytes(value: Any) -> bytes:
    if not isinstance(value, _BYTES_TYPES):
        raise EncodeError(f"expected bytes, got {type(value).__name__}", value)
    return bytes(value)


def _expect_sequence(value: Any) -> Sequence[Any]:
    if isinstance(value, (str,) + _BYTES_TYPES) or not isinstance(value, (list, tuple)):
        raise EncodeError(f"expected list or tuple, got {type(value).__name__}", value)
    return value


# ──────────────────────────────────────────────────────────────────────────────
# Primitives
# ──────────────────────────────────────────────────────────────────────────────


class _Bool(Codec):
    __slots__ = ()

    def encode_into(self, value: Any, out: bytearray) -> None:
        if not isinstance(value, bool):
            raise EncodeError(f"expected bool, got {type(value).__name__}", value)
        out.append(0x01 if value else 0x00)

    def decode_from(self, buf: bytes, offset: int) -> t.Tuple[bool, int]:
        b, end = _read_exact(buf, offset, 1)
        if b[0] > 0x01:
            raise DecodeError(f"invalid bool byte 0x{b[0]:02x}", offset=offset)
        return b[0] == 0x01, end

    def __repr__(self) -> str:
        return "BOOL"


class Int(Codec):
    """Fixed-width little-endian integer."""

    __slots__ = ("bits", "signed", "_size", "_min", "_max")

    def __init__(self, bits: int, signed: bool = False) -> None:
        if bits % 8 or bits <= 0:
            raise ValueError(f"integer width must be a positive multiple of 8, got {bits}")
        self.bits = bits
        self.signed = signed
        self._size = bits // 8
        if signed:
            self._min, self._max = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
        else:
            self._min, self._max = 0, (1 << bits) - 1

    def encode_into(self, value: Any, out: bytearray) -> None:
        v = _expect_int(value)
        if not self._min <= v <= self._max:
            raise EncodeError(f"{v} out of range for {self!r}", value)
        out += v.to_bytes(self._size, "little", signed=self.signed)

    def decode_from(self, buf: bytes, offset: int) -> t.Tuple[int, int]:
        raw, end = _read_exact(buf, offset, self._size)
        return int.from_bytes(raw, "little", signed=self.signed), end

    def __repr__(self) -> str:
        return f"{'I' if self.signed else 'U'}{self.bits}"


class Compact(Codec):
    """
    Compact (variable-length) unsigned integer. `bits` bounds the value when
    the compact wraps a fixed-width type, e.g. Compact<u32>.
    """

    __slots__ = ("bits",)

    def __init__(self, bits: Optional[int] = None) -> None:
        self.bits = bits

    def encode_into(self, value: Any, out: bytearray) -> None:
        v = _expect_int(value)
        if v < 0:
            raise EncodeError("compact cannot encode negative values", value)
        if self.bits is not None and v.bit_length() > self.bits:
            raise EncodeError(f"{v} out of range for {self!r}", value)
        if v < 1 << 6:
            out.append(v << 2)
        elif v < 1 << 14:
            out += ((v << 2) | 0b01).to_bytes(2, "little")
        elif v < 1 << 30:
            out += ((v << 2) | 0b10).to_bytes(4, "little")
        else:
            size = max(4, (v.bit_length() + 7) // 8)
            if size > 67:
                raise EncodeError("compact value exceeds 536 bits", value)
            out.append(((size - 4) << 2) | 0b11)
            out += v.to_bytes(size, "little")

    def decode_from(self, buf: bytes, offset: int) -> t.Tuple[int, int]:
        head, _ = _read_exact(buf, offset, 1)
        mode = head[0] & 0b11
        if mode == 0b00:
            v, end = head[0] >> 2, offset + 1
        elif mode == 0b01:
            raw, end = _read_exact(buf, offset, 2)
            v = int.from_bytes(raw, "little") >> 2
            if v < 1 << 6:
                raise DecodeError("non-canonical compact (2-byte mode)", offset=offset)
        elif mode == 0b10:
            raw, end = _read_exact(buf, offset, 4)
            v = int.from_bytes(raw, "little") >> 2
            if v < 1 << 14:
                raise DecodeError("non-canonical compact (4-byte mode)", offset=offset)
        else:
            size = (head[0] >> 2) + 4
            raw, end = _read_exact(buf, offset + 1, size)
            v = int.from_bytes(raw, "little")
            if v < 1 << 30 or (size > 4 and raw[-1] == 0):
                raise DecodeError("non-canonical compact (big-integer mode)", offset=offset)
        if self.bits is not None and v.bit_length() > self.bits:
            raise DecodeError(f"{v} out of range for {self!r}", offset=offset)
        return v, end

    def __repr__(self) -> str:
        return f"Compact({self.bits})" if self.bits is not None else "COMPACT"


_LEN = Compact()


class _Str(Codec):
    __slots__ = ()

    def encode_into(self, value: Any, out: bytearray) -> None:
        if not isinstance(value, str):
            raise EncodeError(f"expected str, got {type(value).__name__}", value)
        raw = value.encode("utf-8")
        _LEN.encode_into(len(raw), out)
        out += raw

    def decode_from(self, buf: bytes, offset: int) -> t.Tuple[str, int]:
        n, i = _LEN.decode_from(buf, offset)
        raw, end = _read_exact(buf, i, n)
        try:
            return raw.decode("utf-8"), end
        except UnicodeDecodeError as e:
            raise DecodeError(f"invalid UTF-8 string: {e}", offset=i) from e

    def __repr__(self) -> str:
        return "STR"


class _Char(Codec):
    __slots__ = ()

    def encode_into(self, value: Any, out: bytearray) -> None:
        if not isinstance(value, str) or len(value) != 1:
            raise EncodeError("expected a single-character str", value)
        out += ord(value).to_bytes(4, "little")

    def decode_from(self, buf: bytes, offset: int) -> t.Tuple[str, int]:
        raw, end = _read_exact(buf, offset, 4)
        cp = int.from_bytes(raw, "little")
        if cp > 0x10FFFF or 0xD800 <= cp <= 0xDFFF:
            raise DecodeError(f"invalid char code point {cp:#x}", offset=offset)
        return chr(cp), end

    def __repr__(self) -> str:
        return "CHAR"


class _Bytes(Codec):
    """Vec<u8>: compact length followed by the raw bytes."""

    __slots__ = ()

    def encode_into(self, value: Any, out: bytearray) -> None:
        raw = _expect_bytes(value)
        _LEN.encode_into(len(raw), out)
        out += raw

    def decode_from(self, buf: bytes, offset: int) -> t.Tuple[bytes, int]:
        n, i = _LEN.decode_from(buf, offset)
        return _read_exact(buf, i, n)

    def __repr__(self) -> str:
        return "BYTES"


class FixedBytes(Codec):
    """[u8; n]: exactly n raw bytes, optionally wrapped in `factory` on decode."""

    __slots__ = ("length", "factory")

    def __init__(self, length: int, factory: Optional[Callable[[bytes], Any]] = None) -> None:
        self.length = length
        self.factory = factory

    def encode_into(self, value: Any, out: bytearray) -> None:
        raw = _expect_bytes(value)
        if len(raw) != self.length:
            raise EncodeError(f"expected exactly {self.length} bytes, got {len(raw)}", value)
        out += raw

    def decode_from(self, buf: bytes, offset: int) -> t.Tuple[Any, int]:
        raw, end = _read_exact(buf, offset, self.length)
        return (self.factory(raw) if self.factory else raw), end

    def __repr__(self) -> str:
        name = getattr(self.factory, "__name__", None)
        return f"FixedBytes({self.length}{', ' + name if name else ''})"


# ──────────────────────────────────────────────────────────────────────────────
# Containers
# ──────────────────────────────────────────────────────────────────────────────


class Seq(Codec):
    """Vec<T>: compact count followed by the items; decodes to a list."""

    __slots__ = ("item",)

    def __init__(self, item: Codec) -> None:
        self.item = item

    def encode_into(self, value: Any, out: bytearray) -> None:
        items = _expect_sequence(value)
        _LEN.encode_into(len(items), out)
        for it in items:
            self.item.encode_into(it, out)

    def decode_from(self, buf: bytes, offset: int) -> t.Tuple[List[Any], int]:
        n, i = _LEN.decode_from(buf, offset)
        if n > len(buf) - i:
            # Only zero-sized items can outnumber the remaining bytes.
            probe, j = self.item.decode_from(buf, i)
            if j != i or n > _MAX_ZERO_SIZED:
                raise DecodeError(f"sequence length {n} exceeds remaining input", offset=offset)
            return [probe] * n, i
        out: List[Any] = []
        for _ in range(n):
            v, i = self.item.decode_from(buf, i)
            out.append(v)
        return out, i

    def __repr__(self) -> str:
        return f"Seq({self.item!r})"


class Array(Codec):
    """[T; n]: exactly n items without a length prefix; decodes to a tuple."""

    __slots__ = ("item", "length")

    def __init__(self, item: Codec, length: int) -> None:
        self.item = item
        self.length = length

    def encode_into(self, value: Any, out: bytearray) -> None:
        items = _expect_sequence(value)
        if len(items) != self.length:
            raise EncodeError(f"expected {self.length} items, got {len(items)}", value)
        for it in items:
            self.item.encode_into(it, out)

    def decode_from(self, buf: bytes, offset: int) -> t.Tuple[t.Tuple[Any, ...], int]:
        out: List[Any] = []
        i = offset
        for _ in range(self.length):
            v, i = self.item.decode_from(buf, i)
            out.append(v)
        return tuple(out), i

    def __repr__(self) -> str:
        return f"Array({self.item!r}, {self.length})"


class Tuple(Codec):
    """(A, B, ...): items concatenated; the empty tuple is the unit type."""

    __slots__ = ("items",)

    def __init__(self, items: Iterable[Codec]) -> None:
        self.items = tuple(items)

    def encode_into(self, value: Any, out: bytearray) -> None:
        vals = _expect_sequence(value)
        if len(vals) != len(self.items):
            raise EncodeError(f"expected a {len(self.items)}-tuple, got {len(vals)} items", value)
        for codec, v in zip(self.items, vals):
            codec.encode_into(v, out)

    def decode_from(self, buf: bytes, offset: int) -> t.Tuple[t.Tuple[Any, ...], int]:
        out: List[Any] = []
        i = offset
        for codec in self.items:
            v, i = codec.decode_from(buf, i)
            out.append(v)
        return tuple(out), i

    def __repr__(self) -> str:
        if not self.items:
            return "UNIT"
        return f"Tuple(({', '.join(repr(c) for c in self.items)},))"


class Option(Codec):
    __slots__ = ("inner",)

    def __init__(self, inner: Codec) -> None:
        self.inner = inner

    def encode_into(self, value: Any, out: bytearray) -> None:
        if value is None:
            out.append(0x00)
        else:
            out.append(0x01)
            self.inner.encode_into(value, out)

    def decode_from(self, buf: bytes, offset: int) -> t.Tuple[Any, int]:
        tag, i = _read_exact(buf, offset, 1)
        if tag[0] == 0x00:
            return None, i
        if tag[0] == 0x01:
            return self.inner.decode_from(buf, i)
        raise DecodeError(f"invalid Option tag 0x{tag[0]:02x}", offset=offset)

    def __repr__(self) -> str:
        return f"Option({self.inner!r})"


class Result(Codec):
    """Result<T, E>, decoded to `Ok(value)` or `Err(error)`."""

    __slots__ = ("ok", "err")

    def __init__(self, ok: Codec, err: Codec) -> None:
        self.ok = ok
        self.err = err

    def encode_into(self, value: Any, out: bytearray) -> None:
        if isinstance(value, Ok):
            out.append(0x00)
            self.ok.encode_into(value.value, out)
        elif isinstance(value, Err):
            out.append(0x01)
            self.err.encode_into(value.error, out)
        else:
            raise EncodeError(f"expected Ok or Err, got {type(value).__name__}", value)

    def decode_from(self, buf: bytes, offset: int) -> t.Tuple[Any, int]:
        tag, i = _read_exact(buf, offset, 1)
        if tag[0] == 0x00:
            v, i = self.ok.decode_from(buf, i)
            return Ok(v), i
        if tag[0] == 0x01:
            e, i = self.err.decode_from(buf, i)
            return Err(e), i
        raise DecodeError(f"invalid Result tag 0x{tag[0]:02x}", offset=offset)

    def __repr__(self) -> str:
        return f"Result({self.ok!r}, {self.err!r})"


# ──────────────────────────────────────────────────────────────────────────────
# Declared types
# ──────────────────────────────────────────────────────────────────────────────

Fields = Sequence[t.Tuple[str, Codec]]


def _encode_fields(fields: Fields, value: Any, out: bytearray) -> None:
    for name, codec in fields:
        codec.encode_into(getattr(value, name), out)


def _decode_fields(fields: Fields, buf: bytes, offset: int) -> t.Tuple[Dict[str, Any], int]:
    kwargs: Dict[str, Any] = {}
    i = offset
    for name, codec in fields:
        kwargs[name], i = codec.decode_from(buf, i)
    return kwargs, i


class Struct(Codec):
    """Composite type: encodes `cls` instances field by field."""

    __slots__ = ("cls", "fields")

    def __init__(self, cls: Type[Any], fields: Fields) -> None:
        self.cls = cls
        self.fields = tuple(fields)

    def encode_into(self, value: Any, out: bytearray) -> None:
        if not isinstance(value, self.cls):
            raise EncodeError(f"expected {self.cls.__name__}, got {type(value).__name__}", value)
        _encode_fields(self.fields, value, out)

    def decode_from(self, buf: bytes, offset: int) -> t.Tuple[Any, int]:
        kwargs, i = _decode_fields(self.fields, buf, offset)
        return self.cls(**kwargs), i

    def __repr__(self) -> str:
        return f"Struct({self.cls.__name__})"


class Enum(Codec):
    """
    Tagged union. `variants` lists (index, class, fields) per arm; the
    encoded form is the u8 index followed by the arm's fields.
    """

    __slots__ = ("base", "_by_index", "_by_cls")

    def __init__(self, base: Type[Any], variants: Sequence[t.Tuple[int, Type[Any], Fields]]) -> None:
        self.base = base
        self._by_index: Dict[int, t.Tuple[Type[Any], Fields]] = {}
        self._by_cls: Dict[Type[Any], t.Tuple[int, Fields]] = {}
        for index, cls, fields in variants:
            if not 0 <= index <= 0xFF:
                raise ValueError(f"{base.__name__}: variant index {index} does not fit in u8")
            if index in self._by_index:
                raise ValueError(f"{base.__name__}: duplicate variant index {index}")
            self._by_index[index] = (cls, tuple(fields))
            self._by_cls[cls] = (index, tuple(fields))

    @property
    def indices(self) -> t.Tuple[int, ...]:
        return tuple(sorted(self._by_index))

    def encode_into(self, value: Any, out: bytearray) -> None:
        entry = self._by_cls.get(type(value))
        if entry is None:
            raise EncodeError(f"{type(value).__name__} is not a variant of {self.base.__name__}", value)
        index, fields = entry
        out.append(index)
        _encode_fields(fields, value, out)

    def decode_from(self, buf: bytes, offset: int) -> t.Tuple[Any, int]:
        tag, i = _read_exact(buf, offset, 1)
        return self._decode_arm(tag[0], buf, i, offset)

    def decode_variant(self, index: int, payload: bytes, *, strict: bool = True) -> Any:
        """Decode the fields of arm `index` from a payload without the tag byte."""
        value, end = self._decode_arm(index, payload, 0, 0)
        if strict and end != len(payload):
            raise DecodeError(f"{len(payload) - end} trailing bytes after {self.base.__name__} variant {index}", offset=end)
        return value

    def _decode_arm(self, index: int, buf: bytes, offset: int, tag_offset: int) -> t.Tuple[Any, int]:
        arm = self._by_index.get(index)
        if arm is None:
            raise DecodeError(f"{self.base.__name__} has no variant {index}", offset=tag_offset)
        cls, fields = arm
        kwargs, i = _decode_fields(fields, buf, offset)
        return cls(**kwargs), i

    def __repr__(self) -> str:
        return f"Enum({self.base.__name__})"


class Ref(Codec):
    """
    Late-bound reference to a declared type's codec. Lets declarations refer
    to each other regardless of order, including recursion through Vec.
    """

    __slots__ = ("_thunk", "_target")

    def __init__(self, thunk: Callable[[], Codec]) -> None:
        self._thunk = thunk
        self._target: Optional[Codec] = None

    @property
    def target(self) -> Codec:
        if self._target is None:
            self._target = self._thunk()
        return self._target

    def encode_into(self, value: Any, out: bytearray) -> None:
        self.target.encode_into(value, out)

    def decode_from(self, buf: bytes, offset: int) -> t.Tuple[Any, int]:
        return self.target.decode_from(buf, offset)

    def __repr__(self) -> str:
        return f"Ref({self._target!r})" if self._target is not None else "Ref(<unbound>)"


def encode_args(*pairs: t.Tuple[Codec, Any]) -> bytes:
    """Encode call arguments by concatenating each (codec, value) pair."""
    out = bytearray()
    for codec, value in pairs:
        codec.encode_into(value, out)
    return bytes(out)


# ──────────────────────────────────────────────────────────────────────────────
# Shared instances
# ──────────────────────────────────────────────────────────────────────────────

BOOL = _Bool()
U8, U16, U32, U64, U128, U256 = (Int(b) for b in (8, 16, 32, 64, 128, 256))
I8, I16, I32, I64, I128, I256 = (Int(b, signed=True) for b in (8, 16, 32, 64, 128, 256))
STR = _Str()
CHAR = _Char()
BYTES = _Bytes()
COMPACT = _LEN
UNIT = Tuple(())
ACCOUNT_ID = FixedBytes(32, AccountId)
HASH = FixedBytes(32, Hash)
