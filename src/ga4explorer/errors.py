"""Exceptions for talking to Google.

bad input from the caller is still a plain ValueError/KeyError like everywhere
else in the codebase - these are only for things that go wrong remotely.
status_code lets the API layer map them without a lookup table.
"""


class GA4Error(Exception):
    status_code = 502


class AuthError(GA4Error):
    status_code = 401


class PropertyAccessError(GA4Error):
    status_code = 403


class PropertyNotFoundError(GA4Error):
    status_code = 404


class InvalidQueryError(GA4Error):
    status_code = 400
