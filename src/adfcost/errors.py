class CostReportError(Exception):
    """
    base class for every fatal error raised while building a cost report.
    """


class AuthenticationError(CostReportError):
    """
    raised when the identity provider is unreachable or denies the
    token request.
    """


class PaginationError(CostReportError):
    """
    raised when a page of a paged collection cannot be fetched. The
    whole collection is considered lost, no partial result is kept.
    """

    def __init__(
        self,
        message: "str",
        url: "str",
        page: "int",
        status_code: "int | None" = None,
    ) -> "None":
        super().__init__(message)
        self.url = url
        self.page = page
        self.status_code = status_code


class FactoryLookupError(CostReportError):
    """
    raised when the factory metadata (deployment location) cannot be read.
    """


class PriceResolutionError(CostReportError):
    """
    raised when unit prices cannot be resolved from the rate catalog.
    """


class RegionMismatchError(PriceResolutionError):
    """
    raised when no catalog region matches the factory location.
    """
