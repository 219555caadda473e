"""
Error taxonomy for the CouchDB client.

Construction problems (bad credentials, bad resource segments) are raised as
exceptions at the call site. Everything that happens on the wire is reported
as an ``ErrorRecord`` through the request's events instead.
"""

import json
import math
from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class ErrorName(StrEnum):
    BAD_REQUEST = "BadRequest"
    UNAUTHORIZED = "Unauthorized"
    FORBIDDEN = "Forbidden"
    NOT_FOUND = "NotFound"
    NOT_ACCEPTABLE = "NotAcceptable"
    CONFLICT = "Conflict"
    PRECONDITION_FAILED = "PreconditionFailed"
    BAD_CONTENT_TYPE = "BadContentType"
    RANGE_NOT_SATISFIABLE = "RangeNotSatisfiable"
    EXPECTATION_FAILED = "ExpectationFailed"
    SERVER_ERROR = "ServerError"
    HTTP_ERROR = "HttpError"
    DECODE_ERROR = "DecodeError"
    TRANSPORT_ERROR = "TransportError"


class ErrorKind(StrEnum):
    CONSTRUCTION = "construction"
    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"
    DECODE = "decode"


STATUS_ERROR_NAMES: dict[int, ErrorName] = {
    400: ErrorName.BAD_REQUEST,
    401: ErrorName.UNAUTHORIZED,  # login/auth required
    403: ErrorName.FORBIDDEN,
    404: ErrorName.NOT_FOUND,
    406: ErrorName.NOT_ACCEPTABLE,
    409: ErrorName.CONFLICT,  # document revision conflict
    412: ErrorName.PRECONDITION_FAILED,  # ETag invalid or headers mismatch
    415: ErrorName.BAD_CONTENT_TYPE,
    416: ErrorName.RANGE_NOT_SATISFIABLE,
    417: ErrorName.EXPECTATION_FAILED,  # bulk upload failed
    500: ErrorName.SERVER_ERROR,
}


class CouchClientError(Exception):
    """Base class for errors raised by the CouchDB client."""


class ConstructionError(CouchClientError, TypeError):
    """Raised synchronously when a client or request cannot be built."""


class CredentialFormatError(ConstructionError):
    pass


class TypeCheckError(ConstructionError):
    pass


@dataclass(frozen=True)
class ErrorRecord:
    code: int | float
    name: ErrorName
    message: str

    @property
    def kind(self) -> ErrorKind:
        if self.name == ErrorName.TRANSPORT_ERROR:
            return ErrorKind.TRANSPORT
        if self.name == ErrorName.DECODE_ERROR:
            return ErrorKind.DECODE
        return ErrorKind.HTTP_STATUS

    @property
    def has_code(self) -> bool:
        return not (isinstance(self.code, float) and math.isnan(self.code))

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "name": str(self.name), "message": self.message}


def _status_number(status: Any) -> int | float:
    try:
        return int(status)
    except (TypeError, ValueError):
        return math.nan


def classify(status: Any) -> tuple[int | float, ErrorName]:
    """Map a response status code to ``(code, name)``.

    Unparsable status values are kept as NaN and named ``HttpError``.
    """
    code = _status_number(status)
    if isinstance(code, float):
        return code, ErrorName.HTTP_ERROR
    return code, STATUS_ERROR_NAMES.get(code, ErrorName.HTTP_ERROR)


def _humanize(value: Any) -> str:
    return str(value).replace("_", " ")


def make_error(status: Any, body: str) -> ErrorRecord:
    """
    Build the error record for a failed (status >= 400) response.

    Args:
        status: The response status code
        body: The complete response body text

    Returns:
        ErrorRecord whose message is "<error>: <reason>" when the body is a
        CouchDB error document, or the raw body text otherwise
    """
    code, name = classify(status)
    try:
        document = json.loads(body)
    except ValueError:
        document = None

    if isinstance(document, dict) and document.get("error"):
        reason = document.get("reason")
        message = f"{_humanize(document['error'])}: {_humanize(reason) if reason else 'no reason'}"
    else:
        message = body
    return ErrorRecord(code=code, name=name, message=message)


def decode_error(status: Any, exc: Exception) -> ErrorRecord:
    code = _status_number(status)
    return ErrorRecord(code=code, name=ErrorName.DECODE_ERROR, message=str(exc))


def transport_error(exc: Exception) -> ErrorRecord:
    message = str(exc) or exc.__class__.__name__
    return ErrorRecord(code=math.nan, name=ErrorName.TRANSPORT_ERROR, message=message)
