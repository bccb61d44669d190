"""
Error taxonomy for the ranking service.

InvalidFilterError is raised before any retrieval happens and names the
offending input field. UpstreamFetchError wraps failures and timeouts of the
candidate store; the engine never retries them.

An empty candidate set is not an error.
"""


class RankingError(Exception):
    """Base class for all ranking service errors"""


class InvalidFilterError(RankingError, ValueError):
    """A filter, sort option or paging argument failed validation"""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class UpstreamFetchError(RankingError):
    """The candidate store failed or did not answer in time"""
