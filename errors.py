"""
Storefront errors

Every failure the API reports maps to one of these, and each carries the
HTTP status it is rendered with.
"""


class StorefrontError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StorefrontError):
    """Malformed input or a business rule violation (e.g. insufficient stock)"""
    status_code = 400


class NotFoundError(StorefrontError):
    status_code = 404


class StoreError(StorefrontError):
    """The underlying database failed"""
    status_code = 500


class StoreTimeoutError(StoreError):
    def __init__(self, message: str = "The database did not respond in time, please retry."):
        super().__init__(message)
