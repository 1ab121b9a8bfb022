"""Domain-specific exceptions."""

GENERIC_FAILURE_MESSAGE = "Failed to fetch results. Please try again."


class SearchError(Exception):
    pass


class SearchCancelled(SearchError):
    """The request was superseded or aborted; never shown to the user."""


class TransportError(SearchError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StorageError(SearchError):
    pass


class UserVisibleError(SearchError):
    def __init__(self, message: str = GENERIC_FAILURE_MESSAGE) -> None:
        super().__init__(message)
        self.message = message
