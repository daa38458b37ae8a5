"""Activity reconstruction from transaction logs."""

from tribunalsettle.activity.provider import (
    HistoryProvider,
    JsonHistoryProvider,
    SignatureInfo,
    TransactionRecord,
)
from tribunalsettle.activity.reconcile import (
    ActivityPage,
    ActivityReconciler,
    ClaimSummary,
    claim_summary,
    verify_claims,
)

__all__ = [
    "ActivityPage",
    "ActivityReconciler",
    "ClaimSummary",
    "HistoryProvider",
    "JsonHistoryProvider",
    "SignatureInfo",
    "TransactionRecord",
    "claim_summary",
    "verify_claims",
]
