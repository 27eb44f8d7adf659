"""
Runtime support for generated contract clients.

Generated modules import from here only:

- `scale`: SCALE codec combinators
- `types`: AccountId, Hash, Ok, Err, NO_VALUE and declaration bases
- `connection`: transport protocols, event containers and `upload_code`

This package has no third-party dependencies so generated clients stay
importable anywhere the generator's runtime is installed.
"""

from . import scale
from .connection import (
    Connection,
    ContractEvent,
    ContractEvents,
    EventSource,
    SignedConnection,
    events_from_raw,
    upload_code,
)
from .hash import blake2_256, selector_for
from .types import NO_VALUE, AccountId, Err, EventEnum, Hash, NoValue, Ok, ScaleType, Variant

__all__ = [
    "scale",
    "Connection",
    "SignedConnection",
    "ContractEvent",
    "ContractEvents",
    "EventSource",
    "events_from_raw",
    "upload_code",
    "blake2_256",
    "selector_for",
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
