"""
inkgen.runtime.connection
=========================

The transport contract generated clients are written against. Generated code
never talks to a node directly: it encodes payloads and hands them to an
object implementing these protocols.

- `Connection` reads (dry-run queries) and fetches events.
- `SignedConnection` submits signed extrinsics: upload, instantiate, exec.
  The signer lives inside the connection.

Implementations decide on retries, timeouts and concurrency; each generated
call is one independent request/response exchange.

Example
-------
    client = Instance.from_address(addr)
    balance = await client.psp22.balance_of(conn, owner)
    tx = await client.psp22.transfer(signed_conn, to, 10, b"")
    events = (await conn.get_contract_events(tx)).for_contract(client)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, List, Protocol, Sequence, Tuple, Type, Union, runtime_checkable

from ..errors import CodeAlreadyStored, CodeMismatch, DecodeError
from .hash import blake2_256
from .types import AccountId, EventEnum, Hash

log = logging.getLogger(__name__)

TxInfo = Any
"""Opaque transaction handle returned by the transport (hash, block, receipt...)."""


@dataclass(frozen=True)
class ContractEvent:
    """One raw event emitted by a contract within a transaction."""

    account_id: AccountId
    discriminant: int
    data: bytes

    @classmethod
    def from_raw(cls, account_id: Union[bytes, str], raw: bytes) -> "ContractEvent":
        """Split a raw event blob (discriminant byte followed by fields)."""
        if not raw:
            raise DecodeError("empty event payload", offset=0)
        return cls(AccountId(account_id), raw[0], bytes(raw[1:]))


class EventSource(Protocol):
    """Anything bound to a contract address that knows its event type."""

    account_id: AccountId
    EVENT_TYPE: ClassVar[Type[EventEnum]]


@dataclass(frozen=True)
class ContractEvents:
    """All contract events emitted by one transaction, in emission order."""

    events: Tuple[ContractEvent, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "events", tuple(self.events))

    def for_contract(self, contract: EventSource) -> List[Union[EventEnum, DecodeError]]:
        """
        Return the events emitted by `contract`, decoded with its event type.

        Each item is either the decoded event or the DecodeError describing why
        that event could not be decoded (e.g. metadata out of date).
        """
        out: List[Union[EventEnum, DecodeError]] = []
        for ev in self.events:
            if ev.account_id != contract.account_id:
                continue
            try:
                out.append(contract.EVENT_TYPE.decode_event(ev.discriminant, ev.data))
            except DecodeError as exc:
                out.append(exc)
        return out


@runtime_checkable
class Connection(Protocol):
    async def read(self, account_id: AccountId, data: bytes) -> bytes:
        """Dry-run a non-mutating message; `data` is selector + encoded args."""
        ...

    async def get_contract_events(self, tx_info: TxInfo) -> ContractEvents:
        """Fetch the contract events emitted by the transaction `tx_info`."""
        ...


@runtime_checkable
class SignedConnection(Protocol):
    async def upload(self, wasm: bytes, code_hash: Hash) -> TxInfo:
        """
        Store contract code on chain. Raise CodeAlreadyStored if the chain
        already holds `code_hash`.
        """
        ...

    async def instantiate(self, code_hash: Hash, salt: bytes, data: bytes, value: int = 0) -> AccountId:
        """Instantiate `code_hash`; `data` is constructor selector + encoded args."""
        ...

    async def exec(self, account_id: AccountId, data: bytes, value: int = 0) -> TxInfo:
        """Submit a mutating message; `data` is selector + encoded args."""
        ...


async def upload_code(conn: SignedConnection, wasm: bytes, code_hash: Hash, code_len: int) -> TxInfo:
    """
    Upload `wasm` after checking it is the expected code. An already-stored
    code hash counts as success; the transport's tx info (possibly None) is
    returned as-is.
    """
    got = blake2_256(wasm)
    if len(wasm) != code_len or got != code_hash:
        raise CodeMismatch(expected_hash=bytes(code_hash), got_hash=got, expected_len=code_len, got_len=len(wasm))
    try:
        return await conn.upload(bytes(wasm), code_hash)
    except CodeAlreadyStored as exc:
        log.info("upload: code 0x%s already stored", bytes(code_hash).hex())
        return exc.tx_info


def events_from_raw(records: Sequence[Tuple[Union[bytes, str], bytes]]) -> ContractEvents:
    """Build ContractEvents from (account_id, raw event blob) pairs."""
    return ContractEvents(tuple(ContractEvent.from_raw(acc, raw) for acc, raw in records))


__all__ = [
    "TxInfo",
    "ContractEvent",
    "ContractEvents",
    "EventSource",
    "Connection",
    "SignedConnection",
    "upload_code",
    "events_from_raw",
]
