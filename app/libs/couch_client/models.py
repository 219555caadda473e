from collections.abc import AsyncIterable, Mapping
from dataclasses import dataclass, field, fields, replace
from enum import StrEnum
from typing import Any


class Method(StrEnum):
    COPY = "COPY"
    DELETE = "DELETE"
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"


BODY_METHODS = frozenset({Method.POST, Method.PUT})


@dataclass(frozen=True)
class RequestOptions:
    method: str = Method.GET
    path: str = ""
    query: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    host: str | None = None
    port: int | None = None

    @classmethod
    def coerce(cls, target: "RequestOptions | Mapping[str, Any] | str | None") -> "RequestOptions":
        """Build options from a path string, a partial mapping or None."""
        if isinstance(target, RequestOptions):
            return target
        if target is None:
            return cls()
        if isinstance(target, str):
            return cls(path=target)
        if isinstance(target, Mapping):
            known = {f.name for f in fields(cls)}
            unknown = set(target) - known
            if unknown:
                raise TypeError(f"unknown request options: {', '.join(sorted(unknown))}")
            values = dict(target)
            values["query"] = dict(values.get("query") or {})
            values["headers"] = dict(values.get("headers") or {})
            return cls(**values)
        raise TypeError(f"request options must be a path or a mapping, not {type(target).__name__}")

    def with_method(self, method: str) -> "RequestOptions":
        return replace(self, method=method)

    def with_headers(self, **headers: str) -> "RequestOptions":
        return replace(self, headers={**self.headers, **headers})

    def with_query(self, **query: Any) -> "RequestOptions":
        return replace(self, query={**self.query, **query})

    def with_body(self, body: Any) -> "RequestOptions":
        return replace(self, body=body)


@dataclass(frozen=True)
class PreparedRequest:
    method: str
    url: str
    headers: dict[str, str]
    content: bytes | None = None
    stream: AsyncIterable[bytes] | None = None

    @property
    def is_streaming(self) -> bool:
        return self.stream is not None
