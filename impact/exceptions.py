from __future__ import annotations


class ImpactEngineError(Exception):
    """Base engine exception."""


class ConfigError(ImpactEngineError):
    """Raised when settings cannot be parsed or contain unknown keys."""


class InvariantViolation(ImpactEngineError, AssertionError):
    """Raised when input data breaks a structural contract (e.g. candle lengths)."""


class InvalidTransition(ImpactEngineError):
    """Raised when a record is moved out of the measured state."""


class PoolConflictError(ImpactEngineError):
    """Raised when the stored pool changed between read and write."""


class StoreError(ImpactEngineError):
    """Raised when a stored document cannot be read back."""
