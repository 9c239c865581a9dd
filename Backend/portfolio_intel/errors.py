from typing import Optional


class PortfolioError(Exception):
    """Base class for errors surfaced to API callers."""


class UpstreamUnavailable(PortfolioError):
    """
    The hosting platform could not serve the initial user lookup
    (unknown user, exhausted rate limit, network failure).
    Everything past that lookup degrades instead of raising.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status

    @property
    def not_found(self) -> bool:
        return self.status == 404
