"""Basic-auth credential handling for client header sets."""

from base64 import b64encode
from typing import Any
from urllib.parse import quote

from .errors import CredentialFormatError

AUTH_HEADER = "Authorization"


def format_credentials(username: Any = None, password: Any = None) -> str | None:
    """
    Normalize the accepted credential forms to a single "user:pass" string.

    Args:
        username: "user:pass", or a user name when password is given
        password: Password for username

    Returns:
        "user:pass", or None if no credentials were given at all

    Raises:
        CredentialFormatError: If the arguments match none of the forms
    """
    if isinstance(username, str):
        if not password and ":" in username:
            return username
        if isinstance(password, str):
            return f"{username}:{password}"
        raise CredentialFormatError("no password")
    if username is not None:
        raise CredentialFormatError("username not a string")
    if password is not None:
        raise CredentialFormatError("password without username")
    return None


def basic_auth(credentials: str) -> str:
    return "Basic " + b64encode(credentials.encode("utf-8")).decode("ascii")


def auth_prefix(credentials: str) -> str:
    """Render credentials as URL userinfo, e.g. "user:pass@"."""
    username, _, password = credentials.partition(":")
    return f"{quote(username, safe='')}:{quote(password, safe='')}@"


def apply_credentials(headers: dict[str, str], credentials: str) -> str:
    """Store the Basic auth header in headers and return the URL auth prefix."""
    headers[AUTH_HEADER] = basic_auth(credentials)
    return auth_prefix(credentials)


def clear_credentials(headers: dict[str, str]) -> str:
    headers.pop(AUTH_HEADER, None)
    return ""
