"""Errors reported by the exchange engine, rendered as ``{"detail", "code"}`` by the app."""


class ExchangeError(Exception):
    code = "exchange_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArgument(ExchangeError):
    code = "invalid_argument"
    status_code = 400


class NotFound(ExchangeError):
    code = "not_found"
    status_code = 404


class NotEligible(ExchangeError):
    code = "not_eligible"
    status_code = 400


class PreconditionFailed(ExchangeError):
    code = "precondition_failed"
    status_code = 409


class InvalidState(ExchangeError):
    code = "invalid_state"
    status_code = 409


class Forbidden(ExchangeError):
    code = "forbidden"
    status_code = 403


class Unavailable(ExchangeError):
    code = "unavailable"
    status_code = 503
