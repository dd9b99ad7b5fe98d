"""
Service-level errors.
Each carries the HTTP status the API layer responds with.
"""


class BillingError(Exception):
    """Base for expected, client-visible failures."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequestError(BillingError):
    status_code = 400


class AuthenticationError(BillingError):
    status_code = 401


class NotFoundError(BillingError):
    status_code = 404


class ConflictError(BillingError):
    """Business-rule conflict: duplicate active subscription, already processed payment."""

    status_code = 400


class SignatureMismatchError(BillingError):
    """HMAC mismatch on a provider message. Treated as a potential fraud signal."""

    status_code = 400


class ServiceError(BillingError):
    """
    Unexpected failure while talking to the database or payment provider.
    The original exception is chained as __cause__.
    """

    status_code = 500
