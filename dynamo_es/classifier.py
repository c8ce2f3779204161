"""Translation of botocore failures into the persistence error taxonomy.

DynamoDB reports a failed condition in two shapes. A standalone conditional
write raises ``ConditionalCheckFailedException``. A transaction raises
``TransactionCanceledException`` with one cancellation reason per item,
in request order, and only the items whose condition failed carry the
``ConditionalCheckFailed`` code::

    {
        "Error": {"Code": "TransactionCanceledException", "Message": "..."},
        "CancellationReasons": [
            {"Code": "ConditionalCheckFailed", "Message": "..."},
            {"Code": "None"},
        ],
    }

``classify_error`` is a pure function of the exception so it can be tested
against synthetic payloads without a live table.
"""

from typing import Any

from botocore.exceptions import ConnectionError as BotoConnectionError
from botocore.exceptions import (
    ClientError,
    HTTPClientError,
    NoCredentialsError,
    NoRegionError,
    PartialCredentialsError,
)

from .domain import (
    DynamoAggregateError,
    DynamoConnectionError,
    OptimisticLockError,
    UnknownError,
)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailed"
TRANSACTION_CANCELED = "TransactionCanceledException"
CONDITIONAL_CHECK_FAILED_EXCEPTION = "ConditionalCheckFailedException"

# Service error codes that mean "the store could not serve the request right now".
UNAVAILABLE_ERROR_CODES = frozenset(
    {
        "InternalServerError",
        "ServiceUnavailable",
        "ThrottlingException",
        "ProvisionedThroughputExceededException",
        "RequestLimitExceeded",
        "RequestTimeout",
        "RequestTimeoutException",
    }
)

# Per-item cancellation codes with the same meaning inside a transaction.
UNAVAILABLE_CANCELLATION_CODES = frozenset(
    {"ThrottlingError", "ProvisionedThroughputExceeded"}
)

TRANSPORT_ERRORS = (BotoConnectionError, HTTPClientError)
CONFIGURATION_ERRORS = (NoCredentialsError, PartialCredentialsError, NoRegionError)


def error_code(error: ClientError) -> str | None:
    """Return the service error code of a ``ClientError``."""
    code: str | None = error.response.get("Error", {}).get("Code")
    return code


def cancellation_reasons(error: ClientError) -> list[dict[str, Any]]:
    """Return the per-item cancellation reasons of a cancelled transaction."""
    reasons = error.response.get("CancellationReasons")
    if reasons is None:
        reasons = error.response.get("Error", {}).get("CancellationReasons")
    return list(reasons or [])


def cancellation_codes(error: ClientError) -> list[str | None]:
    return [reason.get("Code") for reason in cancellation_reasons(error)]


def is_condition_failure(error: BaseException) -> bool:
    """Return True if the error means a write precondition did not hold."""
    if not isinstance(error, ClientError):
        return False
    code = error_code(error)
    if code == CONDITIONAL_CHECK_FAILED_EXCEPTION:
        return True
    if code == TRANSACTION_CANCELED:
        return CONDITIONAL_CHECK_FAILED in cancellation_codes(error)
    return False


def classify_error(error: BaseException) -> DynamoAggregateError:
    """Map a store or transport failure onto the persistence error taxonomy.

    Args:
        error: The exception raised by the boto3 client.

    Returns:
        An OptimisticLockError when any condition failed, a
        DynamoConnectionError for transport, timeout, throttling and client
        configuration failures, and an UnknownError for everything else.
        Errors that are already classified are returned unchanged.
    """
    if isinstance(error, DynamoAggregateError):
        return error
    if is_condition_failure(error):
        return OptimisticLockError(error)
    if isinstance(error, ClientError):
        code = error_code(error)
        if code in UNAVAILABLE_ERROR_CODES:
            return DynamoConnectionError(error)
        if code == TRANSACTION_CANCELED:
            codes = {c for c in cancellation_codes(error) if c not in (None, "None")}
            if codes and codes <= UNAVAILABLE_CANCELLATION_CODES:
                return DynamoConnectionError(error)
        return UnknownError(error)
    if isinstance(error, (*TRANSPORT_ERRORS, *CONFIGURATION_ERRORS)):
        return DynamoConnectionError(error)
    return UnknownError(error)
