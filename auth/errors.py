"""
auth/errors.py -- Hard-failure exceptions for the auth layer.

Expected rejections (bad credentials, duplicate username) are AuthResult
values, not exceptions. Only infrastructure faults are raised.
"""


class AuthError(Exception):
    """Base class for auth-layer infrastructure failures."""


class StorageUnavailable(AuthError):
    """The account/session database could not be reached or queried.

    Raised by AuthStore with the original SQLAlchemy exception chained as
    __cause__. Not retried inside the auth layer.
    """
