"""
Exception hierarchy for the DEX arbitrage scanner.

Provides specific exception types for the error categories the engine
distinguishes, so callers can tell contract violations from recoverable
source failures.
"""

from typing import Any, Dict, Optional


class DexArbitrageError(Exception):
    """Base exception for all DEX arbitrage related errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(DexArbitrageError):
    """Raised when there are configuration-related issues."""

    pass


class ValidationError(DexArbitrageError):
    """Raised when a caller violates an input precondition."""

    pass


class ChainUnsupportedError(DexArbitrageError):
    """Raised when a price source is asked for a chain it does not serve."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        chain_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.source = source
        self.chain_id = chain_id


class QuoteFetchError(DexArbitrageError):
    """Raised when a price source returns an error or a malformed payload."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.source = source
        self.status_code = status_code


class StoreError(DexArbitrageError):
    """Raised when the durable quote store cannot be read or written."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.operation = operation


class ExecutionError(DexArbitrageError):
    """Raised by execution gateways when a trade hand-off fails."""

    def __init__(
        self,
        message: str,
        opportunity_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.opportunity_id = opportunity_id
