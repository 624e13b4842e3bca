"""Domain-specific exceptions for the Budget API."""


class BudgetAPIError(Exception):
    """Base exception for all Budget API errors."""

    status_code = 500


class ValidationError(BudgetAPIError):
    """Malformed or missing request input."""

    status_code = 400


class TipNotFoundError(BudgetAPIError):
    """The requested tip id is not in the registry."""

    status_code = 404

    def __init__(self, tip_id: str, message: str = "Unknown tip id") -> None:
        self.tip_id = tip_id
        super().__init__(message)


class CredentialMissingError(BudgetAPIError):
    """No OpenRouter credential is configured."""


class ProviderError(BudgetAPIError):
    """Transport failure, non-success status or malformed envelope from the provider."""

    status_code = 503

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.provider_status = status_code
        super().__init__(message)


class ExpansionFailedError(BudgetAPIError):
    """Unexpected failure while resolving an expansion."""


class ExpansionRequestError(BudgetAPIError):
    """Client-side failure talking to the expansion endpoint."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.response_status = status_code
        super().__init__(message)
