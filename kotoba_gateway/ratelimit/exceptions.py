"""Rate limit exceptions."""

from kotoba_gateway.exceptions import KotobaGatewayError


class RateLimitExceededError(KotobaGatewayError):
    """Raised when a client exceeds its request allowance.

    Attributes:
        limit: The rate limit that was exceeded.
        retry_after: Seconds until request can be retried.
    """

    def __init__(self, limit: int, retry_after: float):
        super().__init__(
            message="Too many requests from this IP, please try again later.",
            code="RATE_LIMIT_EXCEEDED"
        )
        self.limit = limit
        self.retry_after = retry_after
