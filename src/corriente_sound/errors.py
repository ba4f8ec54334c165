from __future__ import annotations


class CorrienteError(Exception):
    """Base class for every error raised by the resolution engine."""


class InvalidInput(CorrienteError, ValueError):
    """A request parameter is missing or out of range."""


class CatalogError(CorrienteError):
    """The catalog service could not satisfy a request."""


class UpstreamUnavailable(CatalogError):
    """Network failure, 5xx or rate limiting from the catalog."""


class UpstreamTimeout(UpstreamUnavailable):
    """A catalog call did not answer within its timeout."""


class UpstreamRejected(CatalogError):
    """The catalog refused the request (4xx), e.g. a malformed query."""


class NotFound(CatalogError):
    """The requested track does not exist in the catalog."""
