"""Map botocore failures from Bedrock calls onto BackendError kinds."""

from __future__ import annotations

from botocore.exceptions import BotoCoreError, ClientError

from CRB.core.exceptions import BackendError, BackendErrorKind

THROTTLING_CODES = {
    "ThrottlingException",
    "TooManyRequestsException",
    "ServiceQuotaExceededException",
}

INVALID_INPUT_CODES = {
    "ValidationException",
}


def to_backend_error(exc: Exception, operation: str, model_id: str) -> BackendError:
    """
    Classify a boto3 exception.

    Timeouts and connection failures surface as BotoCoreError subclasses
    (ReadTimeoutError, ConnectTimeoutError, EndpointConnectionError) and are
    reported as Unavailable.
    """
    if isinstance(exc, ClientError):
        error_code = exc.response.get("Error", {}).get("Code", "Unknown")
        if error_code in THROTTLING_CODES:
            kind = BackendErrorKind.THROTTLED
        elif error_code in INVALID_INPUT_CODES:
            kind = BackendErrorKind.INVALID_INPUT
        else:
            kind = BackendErrorKind.UNAVAILABLE
        return BackendError(
            f"{operation} failed: {error_code}",
            kind=kind,
            details={"model_id": model_id, "error_code": error_code, "error": str(exc)}
        )

    if isinstance(exc, BotoCoreError):
        return BackendError(
            f"{operation} failed: {type(exc).__name__}",
            kind=BackendErrorKind.UNAVAILABLE,
            details={"model_id": model_id, "error": str(exc)}
        )

    return BackendError(
        f"{operation} failed: {exc}",
        kind=BackendErrorKind.UNAVAILABLE,
        details={"model_id": model_id, "error": repr(exc)}
    )
