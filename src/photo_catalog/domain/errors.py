"""Error taxonomy shared by services, adapters and the API."""


class PhotoCatalogError(Exception):
    """Base class for photo catalog failures."""


class ValidationError(PhotoCatalogError):
    """Caller supplied invalid input."""


class NotFoundError(PhotoCatalogError):
    """No record matched the owner-scoped lookup."""


class StorageError(PhotoCatalogError):
    """Object store, table store or queue operation failed."""


class ExternalServiceError(PhotoCatalogError):
    """The vision provider answered with a non-success status."""

    def __init__(self, status_code: int | None, body: str) -> None:
        self.status_code = status_code
        self.body = body
        if status_code is None:
            super().__init__(f"OpenAI API error: {body}")
        else:
            super().__init__(f"OpenAI API error: {status_code} - {body}")


class EmptyResponseError(PhotoCatalogError):
    """The vision provider returned no usable content."""


class AuthenticationError(PhotoCatalogError):
    """Bearer token could not be verified."""
