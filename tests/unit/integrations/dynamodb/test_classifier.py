"""Tests for classify_error against synthetic botocore failures."""

import pytest
from botocore.exceptions import (
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    NoRegionError,
    ParamValidationError,
    ReadTimeoutError,
)

from dynamo_es import (
    DeserializationError,
    DynamoConnectionError,
    OptimisticLockError,
    UnknownError,
    classify_error,
)
from dynamo_es.classifier import cancellation_codes, is_condition_failure


def client_error(code: str, operation: str = "TransactWriteItems", **extra) -> ClientError:
    response = {"Error": {"Code": code, "Message": f"{code} happened"}, **extra}
    return ClientError(response, operation)


def cancelled(*codes: str) -> ClientError:
    return client_error(
        "TransactionCanceledException",
        CancellationReasons=[{"Code": code} for code in codes],
    )


def test_condition_failure_in_any_item_is_optimistic_lock():
    error = cancelled("None", "ConditionalCheckFailed", "None")

    result = classify_error(error)

    assert isinstance(result, OptimisticLockError)
    assert result.cause is error


def test_condition_failure_on_last_item_is_optimistic_lock():
    """Test a failing snapshot condition after several event puts."""
    assert isinstance(
        classify_error(cancelled("None", "None", "ConditionalCheckFailed")),
        OptimisticLockError,
    )


def test_cancellation_reasons_nested_under_error():
    error = ClientError(
        {
            "Error": {
                "Code": "TransactionCanceledException",
                "Message": "Transaction cancelled",
                "CancellationReasons": [{"Code": "ConditionalCheckFailed"}],
            }
        },
        "TransactWriteItems",
    )

    assert cancellation_codes(error) == ["ConditionalCheckFailed"]
    assert isinstance(classify_error(error), OptimisticLockError)


def test_single_put_condition_failure_is_optimistic_lock():
    error = client_error("ConditionalCheckFailedException", "PutItem")

    assert is_condition_failure(error)
    assert isinstance(classify_error(error), OptimisticLockError)


def test_transaction_conflict_is_unknown():
    """Test cancellations without a failed condition are not lock errors."""
    result = classify_error(cancelled("None", "TransactionConflict"))

    assert isinstance(result, UnknownError)


def test_cancellation_without_reasons_is_unknown():
    assert isinstance(classify_error(client_error("TransactionCanceledException")), UnknownError)


def test_throttled_transaction_is_connection_error():
    result = classify_error(cancelled("ThrottlingError", "None"))

    assert isinstance(result, DynamoConnectionError)


@pytest.mark.parametrize(
    "code",
    [
        "ProvisionedThroughputExceededException",
        "ThrottlingException",
        "ServiceUnavailable",
        "InternalServerError",
        "RequestLimitExceeded",
    ],
)
def test_unavailable_service_codes_are_connection_errors(code):
    assert isinstance(classify_error(client_error(code, "Query")), DynamoConnectionError)


@pytest.mark.parametrize(
    "error",
    [
        EndpointConnectionError(endpoint_url="http://localhost:8000"),
        ConnectTimeoutError(endpoint_url="http://localhost:8000"),
        ReadTimeoutError(endpoint_url="http://localhost:8000"),
        NoCredentialsError(),
        NoRegionError(),
    ],
)
def test_transport_and_configuration_failures_are_connection_errors(error):
    result = classify_error(error)

    assert isinstance(result, DynamoConnectionError)
    assert result.cause is error


@pytest.mark.parametrize(
    "error",
    [
        client_error("ResourceNotFoundException", "Query"),
        client_error("ValidationException"),
        ParamValidationError(report="Missing required parameter"),
        RuntimeError("unexpected"),
    ],
)
def test_everything_else_is_unknown(error):
    result = classify_error(error)

    assert isinstance(result, UnknownError)
    assert result.cause is error


def test_classified_errors_pass_through():
    error = DeserializationError("bad payload")

    assert classify_error(error) is error
