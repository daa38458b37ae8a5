"""
tribunalsettle/activity/provider.py

Transaction-history provider interface.

The reconciler never talks to the network itself. It consumes a
HistoryProvider: newest-first signature pages for an address, and the
full transaction for a signature. An RPC-backed provider lives with the
client bindings; JsonHistoryProvider reads an exported history file and
backs the CLI and the test suite.

Export file format (JSON):

    {
      "transactions": [
        {
          "signature":     "5h3...",
          "slot":          245001,
          "position":      3,
          "block_time":    1718000000,
          "log_messages":  ["Program YxF3... invoke [1]", ...],
          "account_keys":  ["owner...", "subject...", ...],
          "pre_balances":  [1000000000, ...],
          "post_balances": [ 999995000, ...],
          "instructions":  [{"program_id": "YxF3...", "accounts": [...], "data": "<base58>"}],
          "error":         null
        }
      ]
    }
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import base58

from tribunalsettle.core.exceptions import HistoryFetchError


logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# Records
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SignatureInfo:
    signature:  str
    slot:       int
    block_time: Optional[int] = None
    error:      Optional[str] = None


@dataclass(frozen=True)
class InstructionRecord:
    program_id: str
    accounts:   List[str]
    data:       bytes = b""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InstructionRecord":
        raw = data.get("data") or ""
        return cls(
            program_id= data["program_id"],
            accounts=   list(data.get("accounts", [])),
            data=       base58.b58decode(raw) if raw else b"",
        )


@dataclass
class TransactionRecord:
    signature:     str
    slot:          int
    position:      int = 0
    block_time:    Optional[int] = None
    log_messages:  List[str] = field(default_factory=list)
    account_keys:  List[str] = field(default_factory=list)
    pre_balances:  List[int] = field(default_factory=list)
    post_balances: List[int] = field(default_factory=list)
    instructions:  List[InstructionRecord] = field(default_factory=list)
    error:         Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def balance_delta(self, address: str) -> Optional[int]:
        """post - pre balance at the address's account index, if present."""
        try:
            index = self.account_keys.index(address)
        except ValueError:
            return None
        if index >= len(self.pre_balances) or index >= len(self.post_balances):
            return None
        return self.post_balances[index] - self.pre_balances[index]

    def instructions_for(self, program_id: str) -> List[InstructionRecord]:
        return [ix for ix in self.instructions if ix.program_id == program_id]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TransactionRecord":
        error = data.get("error")
        return cls(
            signature=     data["signature"],
            slot=          int(data["slot"]),
            position=      int(data.get("position", 0)),
            block_time=    data.get("block_time"),
            log_messages=  list(data.get("log_messages") or []),
            account_keys=  list(data.get("account_keys") or []),
            pre_balances=  [int(b) for b in data.get("pre_balances") or []],
            post_balances= [int(b) for b in data.get("post_balances") or []],
            instructions=  [InstructionRecord.from_dict(ix) for ix in data.get("instructions") or []],
            error=         None if error is None else str(error),
        )

    def to_signature_info(self) -> SignatureInfo:
        return SignatureInfo(self.signature, self.slot, self.block_time, self.error)


# ─────────────────────────────────────────────────────────────
# Interface
# ─────────────────────────────────────────────────────────────

class HistoryProvider(Protocol):
    """
    Source of transaction history.

    Implementations raise HistoryFetchError for a page they cannot
    serve. Any other exception is a bug and propagates.
    """

    def get_signatures(
        self,
        address: str,
        before:  Optional[str] = None,
        limit:   int = 100,
    ) -> List[SignatureInfo]:
        """Signatures touching address, newest first, strictly older than before."""
        ...

    def get_transaction(self, signature: str) -> Optional[TransactionRecord]:
        ...


# ─────────────────────────────────────────────────────────────
# File-backed provider
# ─────────────────────────────────────────────────────────────

class JsonHistoryProvider:
    """Serves history from an exported JSON file, newest first by (slot, position)."""

    def __init__(self, transactions: List[TransactionRecord]):
        ordered = sorted(transactions, key=lambda tx: (tx.slot, tx.position), reverse=True)
        self._ordered = ordered
        self._by_signature = {tx.signature: tx for tx in ordered}

    @classmethod
    def load(cls, path: Path) -> "JsonHistoryProvider":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"History file not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        rows = data.get("transactions", []) if isinstance(data, dict) else data
        provider = cls([TransactionRecord.from_dict(row) for row in rows])
        logger.info("Loaded %d transactions from %s", len(provider._ordered), path)
        return provider

    def get_signatures(
        self,
        address: str,
        before:  Optional[str] = None,
        limit:   int = 100,
    ) -> List[SignatureInfo]:
        touching = [
            tx for tx in self._ordered
            if address in tx.account_keys
            or any(address in ix.accounts for ix in tx.instructions)
        ]
        start = 0
        if before is not None:
            positions = [i for i, tx in enumerate(touching) if tx.signature == before]
            if not positions:
                raise HistoryFetchError("Unknown cursor signature", {"before": before})
            start = positions[0] + 1
        return [tx.to_signature_info() for tx in touching[start:start + limit]]

    def get_transaction(self, signature: str) -> Optional[TransactionRecord]:
        return self._by_signature.get(signature)
