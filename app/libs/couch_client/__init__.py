"""CouchDB HTTP client module."""

from .client import CouchClient
from .decoder import DecoderState, JsonResponse
from .dispatch import Call, normalize_call
from .errors import (
    ConstructionError,
    CouchClientError,
    CredentialFormatError,
    ErrorKind,
    ErrorName,
    ErrorRecord,
    TypeCheckError,
    classify,
    make_error,
)
from .events import EventEmitter
from .models import Method, PreparedRequest, RequestOptions
from .transport import RequestHandle

__all__ = [
    "CouchClient",
    "JsonResponse",
    "DecoderState",
    "RequestHandle",
    "RequestOptions",
    "PreparedRequest",
    "Method",
    "Call",
    "normalize_call",
    "EventEmitter",
    "ErrorRecord",
    "ErrorName",
    "ErrorKind",
    "classify",
    "make_error",
    "CouchClientError",
    "ConstructionError",
    "CredentialFormatError",
    "TypeCheckError",
]
