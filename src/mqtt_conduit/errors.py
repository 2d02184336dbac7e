"""Exception hierarchy for mqtt-conduit."""

from typing import Any, Optional


class ConduitError(Exception):
    """Base exception for mqtt-conduit errors."""

    pass


class UnsupportedPayloadTypeError(ConduitError, TypeError):
    """Raised when a publish value cannot be coerced to bytes."""

    pass


class OperationFailedError(ConduitError):
    """The underlying client reported a failure for an operation.

    Instances are carried on a failed ``Token`` rather than raised.

    Args:
        operation: Name of the failed operation (connect, publish, ...)
        message: Human readable description
        reason_code: Reason or return code reported by the client, if any
    """

    def __init__(
        self,
        operation: str,
        message: str = "",
        reason_code: Optional[Any] = None,
    ) -> None:
        self.operation = operation
        self.reason_code = reason_code
        detail = message or "operation failed"
        if reason_code is not None:
            detail = f"{detail} (reason={reason_code})"
        super().__init__(f"{operation}: {detail}")


class ConnectionLostError(OperationFailedError):
    """The connection dropped while the operation was in flight."""

    pass


class SubscriptionRejectedError(OperationFailedError):
    """The broker refused a subscription request."""

    pass


class ChannelClosedError(ConduitError):
    """Raised when reading from a channel that is closed and drained."""

    pass


class TLSMaterialError(ConduitError):
    """Base exception for unusable TLS identity material."""

    pass


class CertificateParseError(TLSMaterialError):
    pass


class KeyParseError(TLSMaterialError):
    pass


class KeyDecryptionError(TLSMaterialError):
    """The private key is encrypted and the password is missing or wrong."""

    pass


class UnsupportedKeyAlgorithmError(TLSMaterialError):
    pass


class KeyMismatchError(TLSMaterialError):
    """The private key does not belong to the client certificate."""

    pass
