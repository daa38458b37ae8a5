"""
tribunalsettle/activity/reconcile.py

Activity Reconciliation Engine

Rebuilds a user's activity history from raw transactions, with no
indexer behind it. One transaction yields at most one ActivityEntry.

Per transaction:
    1. scan_logs()     attribute log lines to our program via the invoke stack
    2. structured      decode every "Program data:" payload against the
                       version's event table; unknown or unreadable payloads
                       are skipped. The highest-precedence event describes
                       the entry (DECODED).
    3. fallback        no event decoded: classify from diagnostic log lines
                       and the instruction's account positions (INFERRED),
                       or surface it unclassified (AMBIGUOUS).
    4. balance delta   post - pre at the owner's account index.

Paging:
    Signatures are requested newest first in pages of config.page_size.
    A page's transactions are fetched (in parallel when enabled), merged,
    de-duplicated by signature and ordered by (slot, position) descending.
    Collection stops once `limit` entries are gathered or history runs
    out. A page that fails is not merged at all; the returned cursor
    resumes at it.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Set

from tribunalsettle.activity.inference import (
    assign_roles,
    identify_instruction,
    infer_from_messages,
    record_address,
)
from tribunalsettle.activity.logs import LogScan, scan_logs
from tribunalsettle.activity.provider import HistoryProvider, SignatureInfo, TransactionRecord
from tribunalsettle.codec.accounts import Decoded, decode_event
from tribunalsettle.codec.borsh import to_plain
from tribunalsettle.codec.schemas import get_schema
from tribunalsettle.core.config import EngineConfig
from tribunalsettle.core.exceptions import HistoryFetchError
from tribunalsettle.core.models import (
    ActivityEntry,
    ActivityType,
    ClaimCheck,
    Confidence,
    ParticipantRecord,
    ResolutionOutcome,
    Role,
    RoundResult,
)
from tribunalsettle.settlement.engine import check_claim


logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# Result Types
# ─────────────────────────────────────────────────────────────

@dataclass
class FailedPage:
    before: Optional[str]
    error:  str


@dataclass
class ActivityPage:
    entries:      List[ActivityEntry]
    next_cursor:  Optional[str]
    exhausted:    bool
    failed_pages: List[FailedPage] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed_pages

    def to_dict(self) -> Dict[str, object]:
        return {
            "entries":      [e.to_dict() for e in self.entries],
            "next_cursor":  self.next_cursor,
            "exhausted":    self.exhausted,
            "failed_pages": [{"before": p.before, "error": p.error} for p in self.failed_pages],
        }


@dataclass
class ClaimSummary:
    """Claims one user made for one subject/round, by role."""
    subject:    str
    round:      int
    defender:   Optional[ActivityEntry] = None
    challenger: Optional[ActivityEntry] = None
    juror:      Optional[ActivityEntry] = None

    @property
    def total(self) -> int:
        return sum(
            entry.amount or 0
            for entry in (self.defender, self.challenger, self.juror)
            if entry is not None
        )

    def by_role(self) -> Dict[Role, ActivityEntry]:
        found = {
            Role.DEFENDER:   self.defender,
            Role.CHALLENGER: self.challenger,
            Role.JUROR:      self.juror,
        }
        return {role: entry for role, entry in found.items() if entry is not None}

    def to_dict(self) -> Dict[str, object]:
        return {
            "subject":    self.subject,
            "round":      self.round,
            "defender":   self.defender.amount if self.defender else None,
            "challenger": self.challenger.amount if self.challenger else None,
            "juror":      self.juror.amount if self.juror else None,
            "total":      self.total,
        }


def _sort_entries(entries: List[ActivityEntry]) -> List[ActivityEntry]:
    return sorted(entries, key=lambda e: e.sort_key, reverse=True)


# ─────────────────────────────────────────────────────────────
# Reconciler
# ─────────────────────────────────────────────────────────────

class ActivityReconciler:

    def __init__(
        self,
        provider: HistoryProvider,
        config:   Optional[EngineConfig] = None,
    ):
        self.provider   = provider
        self.config     = config or EngineConfig()
        self.version    = self.config.schema_version
        self.program_id = self.config.resolved_program_id
        self.schema     = get_schema(self.version)

    # ── Single transaction ────────────────────────────────────

    def reconcile_transaction(
        self,
        tx:    TransactionRecord,
        owner: Optional[str] = None,
    ) -> Optional[ActivityEntry]:
        """
        Reduce one transaction to an activity entry.

        Returns None when the transaction never touched our program.
        """
        scan         = scan_logs(tx.log_messages, self.program_id)
        instructions = tx.instructions_for(self.program_id)
        if not scan.invoked and not instructions:
            return None

        if scan.truncated:
            logger.debug("Logs truncated for %s", tx.signature)

        decoded = self._decode_events(scan)
        if decoded:
            entry = self._from_events(tx, decoded)
        else:
            entry = self._from_heuristics(tx, scan, instructions)

        entry.success = tx.succeeded and not scan.failed
        if owner is not None:
            entry.balance_delta = tx.balance_delta(owner)
        return entry

    def _decode_events(self, scan: LogScan) -> List[Decoded]:
        decoded: List[Decoded] = []
        for payload in scan.payloads:
            event = decode_event(payload, self.version)
            if event is not None:
                decoded.append(event)
        return decoded

    def _from_events(self, tx: TransactionRecord, decoded: List[Decoded]) -> ActivityEntry:
        primary = min(decoded, key=lambda event: self.schema.precedence(event.name))
        spec    = self.schema.event(primary.name)
        fields  = primary.fields

        role = fields.get("role")
        outcome = fields.get("outcome")
        return ActivityEntry(
            signature=     tx.signature,
            slot=          tx.slot,
            position=      tx.position,
            block_time=    tx.block_time,
            activity_type= spec.activity_type,
            confidence=    Confidence.DECODED,
            source=        primary.name,
            subject=       fields.get("subject_id"),
            round=         fields.get("round"),
            actor=         fields.get(spec.actor_field) if spec.actor_field else None,
            amount=        fields.get(spec.amount_field) if spec.amount_field else None,
            role=          role if isinstance(role, Role) else None,
            outcome=       outcome if isinstance(outcome, ResolutionOutcome) else None,
            data=          to_plain(fields),
            events=        [event.name for event in decoded],
        )

    def _from_heuristics(
        self,
        tx:           TransactionRecord,
        scan:         LogScan,
        instructions: Sequence,
    ) -> ActivityEntry:
        first = instructions[0] if instructions else None
        spec  = identify_instruction(
            self.version,
            first.data if first is not None else b"",
            scan.instruction_names,
        )
        inference = infer_from_messages(scan.messages)
        roles     = assign_roles(first.accounts if first is not None else tx.account_keys, spec)

        if inference is not None:
            activity_type = inference.activity_type
        elif spec is not None:
            activity_type = spec.activity_type
        else:
            activity_type = ActivityType.UNKNOWN

        confidence = Confidence.AMBIGUOUS if activity_type is ActivityType.UNKNOWN else Confidence.INFERRED
        data: Dict[str, object] = {"accounts": roles}
        if inference is not None:
            data.update(inference.detail)

        return ActivityEntry(
            signature=     tx.signature,
            slot=          tx.slot,
            position=      tx.position,
            block_time=    tx.block_time,
            activity_type= activity_type,
            confidence=    confidence,
            source=        spec.name if spec is not None else None,
            subject=       roles.get("subject"),
            dispute=       roles.get("dispute"),
            record=        record_address(roles),
            round=         inference.round if inference else None,
            actor=         roles.get("signer") or (tx.account_keys[0] if tx.account_keys else None),
            amount=        inference.amount if inference else None,
            role=          inference.role if inference else None,
            outcome=       inference.outcome if inference else None,
            data=          to_plain(data),
        )

    # ── Paging ────────────────────────────────────────────────

    def _fetch_transactions(self, signatures: List[SignatureInfo]) -> List[TransactionRecord]:
        """All transactions of one page, or HistoryFetchError for the page."""
        names = [info.signature for info in signatures]
        if self.config.parallel and len(names) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
                fetched = list(pool.map(self.provider.get_transaction, names))
        else:
            fetched = [self.provider.get_transaction(name) for name in names]

        records: List[TransactionRecord] = []
        for name, tx in zip(names, fetched):
            if tx is None:
                logger.debug("Transaction %s not available, skipping", name)
                continue
            records.append(tx)
        return records

    def fetch_activity(
        self,
        owner:  str,
        limit:  Optional[int] = None,
        before: Optional[str] = None,
    ) -> ActivityPage:
        """
        Newest-first activity for owner, at most `limit` entries, starting
        strictly before the `before` signature.
        """
        limit = limit if limit is not None else self.config.default_limit
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")

        entries: List[ActivityEntry] = []
        seen:    Set[str] = set()
        failed:  List[FailedPage] = []
        cursor    = before
        exhausted = False

        while len(entries) < limit:
            try:
                signatures = self.provider.get_signatures(owner, before=cursor, limit=self.config.page_size)
                transactions = self._fetch_transactions(signatures)
            except HistoryFetchError as e:
                logger.warning("History page before %s failed: %s", cursor, e)
                failed.append(FailedPage(before=cursor, error=str(e)))
                break

            if not signatures:
                exhausted = True
                break

            page: List[ActivityEntry] = []
            for tx in transactions:
                if tx.signature in seen:
                    continue
                seen.add(tx.signature)
                entry = self.reconcile_transaction(tx, owner)
                if entry is not None:
                    page.append(entry)

            entries.extend(_sort_entries(page))
            cursor = signatures[-1].signature
            if len(signatures) < self.config.page_size:
                exhausted = True
                break

        truncated = len(entries) > limit
        entries = _sort_entries(entries)[:limit]

        if truncated or (len(entries) == limit and not exhausted and not failed):
            next_cursor = entries[-1].signature
            exhausted = False
        elif exhausted:
            next_cursor = None
        else:
            next_cursor = cursor

        logger.info(
            "Reconciled %d entries for %s (exhausted=%s, failed_pages=%d)",
            len(entries), owner, exhausted, len(failed),
        )
        return ActivityPage(entries=entries, next_cursor=next_cursor, exhausted=exhausted, failed_pages=failed)

    def iter_activity(self, owner: str, before: Optional[str] = None) -> Iterator[ActivityEntry]:
        """
        Stream the whole history, newest first. Stop iterating to cancel.

        Raises:
            HistoryFetchError: a page could not be fetched
        """
        cursor = before
        while True:
            page = self.fetch_activity(owner, limit=self.config.page_size, before=cursor)
            yield from page.entries
            if page.failed_pages:
                failure = page.failed_pages[0]
                raise HistoryFetchError(
                    "History page failed",
                    {"before": failure.before, "error": failure.error},
                )
            if page.exhausted or page.next_cursor is None:
                return
            cursor = page.next_cursor

    # ── Claims ────────────────────────────────────────────────

    def claim_history(
        self,
        owner:  str,
        limit:  int = 50,
        before: Optional[str] = None,
    ) -> List[ActivityEntry]:
        """Successful reward claims by owner, newest first."""
        claims: List[ActivityEntry] = []
        for entry in self.iter_activity(owner, before=before):
            if entry.activity_type is ActivityType.CLAIM and entry.success:
                if entry.actor in (None, owner):
                    claims.append(entry)
                    if len(claims) >= limit:
                        break
        return claims


def claim_summary(
    entries: Sequence[ActivityEntry],
    subject: str,
    round:   int,
) -> ClaimSummary:
    """
    Group claim entries for one subject/round by role.

    Entries without a known role, subject or round are ignored.
    Failed claims are ignored too.
    """
    summary = ClaimSummary(subject=subject, round=round)
    for entry in entries:
        if entry.activity_type is not ActivityType.CLAIM or entry.role is None:
            continue
        if not entry.success:
            continue
        if entry.subject != subject or entry.round != round:
            continue
        attr = entry.role.value.lower()
        # Entries arrive newest first; keep the latest claim per role.
        if getattr(summary, attr) is None:
            setattr(summary, attr, entry)
    return summary


def verify_claims(
    summary:      ClaimSummary,
    round_result: RoundResult,
    records:      Sequence[ParticipantRecord],
) -> List[ClaimCheck]:
    """Recompute each observed claim and compare it with what was paid."""
    by_role = {record.role: record for record in records}
    checks: List[ClaimCheck] = []
    for role, entry in summary.by_role().items():
        record = by_role.get(role)
        if record is None:
            logger.warning("No %s record supplied for observed claim %s", role.value, entry.signature)
            continue
        checks.append(check_claim(round_result, record, entry.amount or 0))
    return checks
