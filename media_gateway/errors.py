class CatalogError(Exception):
    """Base class for failures raised while serving catalog data."""


class InvalidArgument(CatalogError):
    """A request parameter was rejected before any upstream call."""


class UpstreamFailure(CatalogError):
    """A catalog client could not produce data."""


class NotFound(UpstreamFailure):
    """The upstream catalog does not know the requested identifier."""


class GatewayError(Exception):
    """A catalog failure translated into an HTTP status for the client."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
