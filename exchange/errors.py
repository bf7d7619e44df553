from typing import Optional


class ExchangeAPIError(Exception):
    """A failed exchange call. `status` is the upstream HTTP status when one was received."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status

    def __repr__(self):
        return f"{self.__class__.__name__}({self.message!r}, status={self.status!r})"


class ExchangeCredentialsInvalid(ExchangeAPIError):
    pass


class ExchangeRateLimited(ExchangeAPIError):
    pass


class ExchangeServerError(ExchangeAPIError):
    pass


class ExchangeUnreachable(ExchangeAPIError):

    def __init__(self, message: str):
        super().__init__(message, status=None)


class ExchangeMalformedResponse(ExchangeAPIError):
    pass


class ExchangeInvalidPriceData(ExchangeAPIError):
    pass
