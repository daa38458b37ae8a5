"""
tribunalsettle/cli/decode.py

tribunalsettle decode: decode one event payload or account blob.

Usage:
    tribunalsettle decode <base64>                  Event payload ("Program data:" line)
    tribunalsettle decode <hex> --kind account      Account data
    tribunalsettle decode <base64> --schema dispute
"""

import base64
import binascii
import sys

import click

from tribunalsettle.cli.output import EXIT_FINDINGS, EXIT_OK, FORMAT_OPTION, emit_json, fail, row_info
from tribunalsettle.codec.accounts import decode_account_strict, decode_event_strict
from tribunalsettle.core.exceptions import DecodeError
from tribunalsettle.core.models import SchemaVersion


def _parse_bytes(raw: str) -> bytes:
    text = raw.strip()
    if text.startswith("0x"):
        return bytes.fromhex(text[2:])
    try:
        return bytes.fromhex(text)
    except ValueError:
        return base64.b64decode(text, validate=True)


@click.command(name="decode")
@click.argument("payload", type=str)
@click.option("--kind", type=click.Choice(["event", "account"]), default="event", show_default=True)
@click.option("--schema", type=click.Choice([v.value for v in SchemaVersion]),
              default=SchemaVersion.ROUND.value, show_default=True)
@FORMAT_OPTION
def decode_command(payload: str, kind: str, schema: str, fmt: str) -> None:
    """Decode PAYLOAD (hex or base64) against the discriminator table."""
    try:
        data = _parse_bytes(payload)
    except (ValueError, binascii.Error) as e:
        fail(f"Payload is neither hex nor base64: {e}", fmt)

    version = SchemaVersion(schema)
    try:
        if kind == "account":
            decoded = decode_account_strict(data, version)
        else:
            decoded = decode_event_strict(data, version)
    except DecodeError as e:
        if fmt == "json":
            emit_json("tribunalsettle_decode", {"decoded": False, "error": str(e)})
        else:
            click.echo(f"  ❌  {e}")
        sys.exit(EXIT_FINDINGS)

    if fmt == "json":
        emit_json("tribunalsettle_decode", {"decoded": True, "name": decoded.name, "fields": decoded.plain()})
    else:
        click.echo(row_info("Name", decoded.name))
        for key, value in decoded.plain().items():
            click.echo(row_info(key, str(value)))
    sys.exit(EXIT_OK)
