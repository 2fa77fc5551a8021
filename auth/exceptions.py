"""auth/exceptions.py -- Errors raised by AuthManager implementations."""


class IllegalUsernameError(Exception):
    """The username is malformed or already taken.

    The message is shown to the administrator verbatim, so keep it free of
    internal detail.
    """
