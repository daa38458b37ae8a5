"""
tribunalsettle/codec/discriminators.py

Discriminator tables.

A discriminator is the first 8 bytes of SHA-256 over a namespaced name:

    event:<EventName>           structured event payloads
    account:<AccountName>       account data
    global:<instruction_name>   instruction data (snake_case name)

Tables are built once per SchemaVersion on first use, then shared by
reference as read-only mappings. Lookup is a plain bytes comparison.
"""

import hashlib
import re
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping, Optional

from tribunalsettle.codec.schemas import get_schema
from tribunalsettle.core.constants import DISCRIMINATOR_SIZE
from tribunalsettle.core.models import SchemaVersion


def discriminator(namespace: str, name: str) -> bytes:
    return hashlib.sha256(f"{namespace}:{name}".encode("utf-8")).digest()[:DISCRIMINATOR_SIZE]


def event_discriminator(name: str) -> bytes:
    return discriminator("event", name)


def account_discriminator(name: str) -> bytes:
    return discriminator("account", name)


def instruction_discriminator(name: str) -> bytes:
    return discriminator("global", name)


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def instruction_name_from_log(name: str) -> str:
    """'VoteOnDispute' (as logged) → 'vote_on_dispute' (as hashed)."""
    return _CAMEL_BOUNDARY.sub("_", name.strip()).lower()


@dataclass(frozen=True)
class DiscriminatorTable:
    version:      SchemaVersion
    events:       Mapping[bytes, str]
    accounts:     Mapping[bytes, str]
    instructions: Mapping[bytes, str]

    def event_name(self, data: bytes) -> Optional[str]:
        return self.events.get(bytes(data[:DISCRIMINATOR_SIZE]))

    def account_name(self, data: bytes) -> Optional[str]:
        return self.accounts.get(bytes(data[:DISCRIMINATOR_SIZE]))

    def instruction_name(self, data: bytes) -> Optional[str]:
        return self.instructions.get(bytes(data[:DISCRIMINATOR_SIZE]))


@lru_cache(maxsize=None)
def get_table(version: SchemaVersion) -> DiscriminatorTable:
    """Build (once) and return the immutable table for a schema version."""
    schema = get_schema(version)
    return DiscriminatorTable(
        version=      version,
        events=       MappingProxyType({event_discriminator(e.name): e.name for e in schema.events}),
        accounts=     MappingProxyType({account_discriminator(n): n for n in schema.accounts}),
        instructions= MappingProxyType({instruction_discriminator(n): n for n in schema.instructions}),
    )
