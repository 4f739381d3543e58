"""Error taxonomy shared by the payment gate, the retry engine and the API layer."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from printpay.domain.models.commit import PaymentRejection


class PrintPayError(Exception):
    """Base class for all printpay errors."""


class ConfigurationError(PrintPayError):
    """Unsupported network, malformed price or invalid settings. Fatal."""


class PaymentDecodeError(PrintPayError):
    """The presented payment header could not be decoded."""


class PaymentRequired(PrintPayError):
    """Raised to short-circuit a request that still needs (valid) payment."""

    def __init__(self, rejection: "PaymentRejection"):
        super().__init__(rejection.reason)
        self.rejection = rejection


class ValidationError(PrintPayError):
    """Client input is malformed."""

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []


class BusinessRuleError(PrintPayError):
    """Input is well-formed but semantically invalid."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class NotFoundError(PrintPayError):
    """A referenced entity (e.g. a listed product) does not exist."""

    def __init__(self, message: str, code: str = "NOT_FOUND"):
        super().__init__(message)
        self.code = code
        self.message = message


class SideEffectError(PrintPayError):
    """The purchase side effect failed; payment is never settled."""


class SettlementInconsistency(PrintPayError):
    """The side effect succeeded but settlement did not.

    Recorded on the commit outcome and logged for manual reconciliation,
    never raised to the requester.
    """

    def __init__(self, message: str, transaction: Optional[str] = None, payer: Optional[str] = None):
        super().__init__(message)
        self.transaction = transaction
        self.payer = payer


class FailureKind(str, Enum):
    """Structured kind of an external failure, used for retry classification."""

    TIMEOUT = "timeout"
    NETWORK = "network"
    CONNECTION_RESET = "connection_reset"
    DNS = "dns"
    HTTP = "http"
    INVALID_RESPONSE = "invalid_response"
    UNKNOWN = "unknown"


class ExternalServiceError(PrintPayError):
    """Failure talking to an external provider (facilitator, Printify, OpenAI, RPC)."""

    def __init__(
        self,
        service: str,
        message: str,
        kind: FailureKind = FailureKind.UNKNOWN,
        status_code: Optional[int] = None,
    ):
        super().__init__(f"{service}: {message}")
        self.service = service
        self.kind = kind
        self.status_code = status_code
