"""
tribunalsettle/core/exceptions.py

TribunalSettle Exception Hierarchy

All exceptions inherit from TribunalSettleError for easy catching.

Degenerate inputs (zero pools, zero vote weight) are NOT exceptions:
the calculators resolve them to a zero share. Ambiguous activity is
NOT an exception either: it surfaces as a low-confidence entry.
"""


class TribunalSettleError(Exception):
    """Base exception for all TribunalSettle errors"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ValidationError(TribunalSettleError):
    """Raised when a model value is outside its allowed range"""
    pass


class ArithmeticOverflowError(TribunalSettleError):
    """Raised when a checked intermediate leaves its integer width"""
    pass


class DecodeError(TribunalSettleError):
    """Raised by strict decoding when a payload cannot be read"""
    pass


class UnknownDiscriminatorError(DecodeError):
    """Raised by strict decoding when no layout matches the discriminator"""
    pass


class ConfigError(TribunalSettleError):
    """Raised when engine configuration is invalid"""
    pass


class HistoryFetchError(TribunalSettleError):
    """Raised when the history provider fails to return a page"""
    pass
