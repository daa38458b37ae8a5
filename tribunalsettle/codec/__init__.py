"""Discriminator tables, schema layouts and the binary decoder."""

from tribunalsettle.codec.accounts import (
    Decoded,
    decode_account,
    decode_account_strict,
    decode_event,
    decode_event_strict,
    encode_account,
    encode_event,
    find_round,
    to_record,
    to_round_results,
)
from tribunalsettle.codec.discriminators import DiscriminatorTable, get_table
from tribunalsettle.codec.schemas import get_schema

__all__ = [
    "Decoded",
    "DiscriminatorTable",
    "decode_account",
    "decode_account_strict",
    "decode_event",
    "decode_event_strict",
    "encode_account",
    "encode_event",
    "find_round",
    "get_schema",
    "get_table",
    "to_record",
    "to_round_results",
]
