from __future__ import annotations


class NotFoundError(LookupError):
    pass


class AuthError(Exception):
    """Missing or invalid credentials."""


class ConflictError(Exception):
    pass
