"""
Argument normalization for the verb methods.

The verbs accept ``(target, [callback], [body], [raw])`` positionally, where
only POST and PUT take a body. ``normalize_call`` turns any accepted form
into a canonical ``Call`` so that the rest of the client only deals with
``RequestOptions``.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from .models import BODY_METHODS, Method, RequestOptions

Callback = Callable[[Any], Any]

_MISSING: Any = object()


def noop(*_args: Any) -> None:
    return None


@dataclass(frozen=True)
class Call:
    options: RequestOptions
    callback: Callback
    raw: bool


def normalize_call(
    method: str,
    target: RequestOptions | Mapping[str, Any] | str | None = None,
    *args: Any,
    callback: Callback | None = None,
    body: Any = _MISSING,
    raw: bool | None = None,
) -> Call:
    """
    Resolve an overloaded verb call.

    Args:
        method: HTTP verb
        target: Request path, RequestOptions, or a mapping of option fields
        *args: Optional callback, body (POST/PUT only) and raw flag, in order
        callback: Explicit callback
        body: Explicit body
        raw: Explicit raw flag

    Returns:
        Call with the options (method and body applied), the callback
        (a no-op if none was given) and the transport mode

    Raises:
        TypeError: If arguments are left over or given twice
    """
    method = Method(str(method).upper())
    rest = list(args)

    # the final positional slot selects the transport
    if rest and isinstance(rest[-1], bool):
        flag = rest.pop()
        if raw is not None:
            raise TypeError("raw flag given twice")
        raw = flag

    if rest and (rest[0] is None or callable(rest[0])):
        slot = rest.pop(0)
        if slot is not None:
            if callback is not None:
                raise TypeError("callback given twice")
            callback = slot

    if rest and method in BODY_METHODS:
        if body is not _MISSING:
            raise TypeError("body given twice")
        body = rest.pop(0)

    if rest:
        raise TypeError("too many arguments")

    options = RequestOptions.coerce(target).with_method(method)
    if body is not _MISSING:
        options = options.with_body(body)

    return Call(
        options=options,
        callback=callback or noop,
        raw=bool(raw) or method == Method.HEAD,
    )
