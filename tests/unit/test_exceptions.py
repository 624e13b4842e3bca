"""Unit tests for custom exceptions."""

import pytest

from budget_api.exceptions import (
    BudgetAPIError,
    CredentialMissingError,
    ExpansionFailedError,
    ExpansionRequestError,
    ProviderError,
    TipNotFoundError,
    ValidationError,
)


@pytest.mark.parametrize(
    ("exc", "status_code"),
    [
        (BudgetAPIError("boom"), 500),
        (ValidationError("Missing tipId"), 400),
        (TipNotFoundError("tip-x"), 404),
        (CredentialMissingError("no key"), 500),
        (ProviderError("upstream"), 503),
        (ExpansionFailedError("failed"), 500),
        (ExpansionRequestError("failed"), 500),
    ],
)
def test_status_codes(exc, status_code):
    assert isinstance(exc, BudgetAPIError)
    assert exc.status_code == status_code


def test_tip_not_found_defaults():
    exc = TipNotFoundError("tip-x")

    assert str(exc) == "Unknown tip id"
    assert exc.tip_id == "tip-x"


def test_provider_error_keeps_upstream_status():
    exc = ProviderError("OpenRouter request failed (429): slow down", status_code=429)

    assert exc.provider_status == 429
    assert exc.status_code == 503


def test_request_error_keeps_response_status():
    assert ExpansionRequestError("Request failed (502)", status_code=502).response_status == 502
    assert ExpansionRequestError("timed out").response_status is None
