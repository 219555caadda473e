"""
Raw HTTP transport for the CouchDB client.

Merges per-request options over the client defaults, serializes request
bodies and issues the request with httpx. Requests run as asyncio tasks;
``send`` returns a ``RequestHandle`` right away.
"""

import asyncio
import inspect
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable, Mapping
from dataclasses import replace
from typing import TYPE_CHECKING, Any

import httpx

from extensions.ext_logging import trace_id_generator, trace_id_var

from .errors import ErrorRecord, transport_error
from .events import EventEmitter
from .models import BODY_METHODS, Method, PreparedRequest, RequestOptions

if TYPE_CHECKING:
    from .client import CouchClient

logger = logging.getLogger(__name__)

ResponseHandler = Callable[[httpx.Response], Awaitable[Any]]
ErrorHandler = Callable[[ErrorRecord], Any]

_END: Any = object()


def is_bytes_like(value: Any) -> bool:
    return isinstance(value, (bytes, bytearray, memoryview))


def encode_chunk(value: Any, encoding: str = "utf-8") -> bytes:
    """Serialize a body or body chunk; anything but text and bytes becomes JSON."""
    if isinstance(value, str):
        return value.encode(encoding)
    if is_bytes_like(value):
        return bytes(value)
    return json.dumps(value).encode(encoding)


def is_stream(body: Any) -> bool:
    return isinstance(body, EventEmitter) or hasattr(body, "__aiter__")


def url_host(host: str) -> str:
    """Bracket IPv6 literals for use in a URL authority."""
    if ":" in host and not host.startswith("["):
        return f"[{host}]"
    return host


def has_header(headers: Mapping[str, str], name: str) -> bool:
    name = name.lower()
    return any(key.lower() == name for key in headers)


def merge_headers(defaults: Mapping[str, str], overrides: Mapping[str, str] | None) -> dict[str, str]:
    """Caller headers win; defaults only fill in names the caller did not set."""
    merged = dict(overrides or {})
    for key, value in defaults.items():
        if not has_header(merged, key):
            merged[key] = value
    return merged


def _emitter_chunks(emitter: EventEmitter) -> AsyncIterator[bytes]:
    # register now so that no data event is missed before the request starts
    queue: asyncio.Queue[Any] = asyncio.Queue()
    emitter.on("data", queue.put_nowait)
    emitter.once("end", lambda *_: queue.put_nowait(_END))

    async def chunks() -> AsyncIterator[bytes]:
        while True:
            chunk = await queue.get()
            if chunk is _END:
                break
            yield encode_chunk(chunk)

    return chunks()


async def _iterable_chunks(body: AsyncIterable[Any]) -> AsyncIterator[bytes]:
    async for chunk in body:
        yield encode_chunk(chunk)


def stream_body(body: Any) -> AsyncIterator[bytes]:
    if isinstance(body, EventEmitter):
        return _emitter_chunks(body)
    return _iterable_chunks(body)


def prepare_request(client: "CouchClient", options: RequestOptions) -> PreparedRequest:
    method = str(options.method or Method.GET).upper()
    host = options.host or client.host
    port = options.port or client.port
    path = client.get_path(options.path) + client.get_query(options.query)
    headers = merge_headers(client.headers, options.headers)
    content: bytes | None = None
    stream: AsyncIterator[bytes] | None = None

    if method in BODY_METHODS:
        # data might be streamed later, so the content type is always set
        if not has_header(headers, "Content-Type"):
            headers["Content-Type"] = client.default_content_type

        body = options.body
        if body is not None and not is_stream(body):
            content = encode_chunk(body)
            if not has_header(headers, "Content-Length"):
                headers["Content-Length"] = str(len(content))
        else:
            if body is not None:
                stream = stream_body(body)
            if not has_header(headers, "Content-Length"):
                headers["Transfer-Encoding"] = "chunked"

    return PreparedRequest(
        method=method,
        url=f"{client.protocol}://{url_host(host)}:{port}{path}",
        headers=headers,
        content=content,
        stream=stream,
    )


class RequestHandle(EventEmitter):
    """
    Handle of a dispatched request.

    A POST or PUT issued without a body stays open: the body is streamed
    with ``write`` and completed with ``end``. Values that are neither text
    nor bytes are written as JSON. Every other request is ended already.

    Events:
        response: httpx.Response, once the response headers arrived
        error: ErrorRecord, when the connection failed

    Awaiting the handle waits for the request to complete and returns the
    raw response (raw mode) or the JsonResponse (JSON mode).
    """

    def __init__(self, open_body: bool = False) -> None:
        super().__init__()
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._ended = not open_body
        self._task: asyncio.Task | None = None
        self.response: httpx.Response | None = None
        self.error: ErrorRecord | None = None

    @property
    def ended(self) -> bool:
        return self._ended

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def write(self, data: Any, encoding: str = "utf-8") -> None:
        if self._ended:
            raise RuntimeError("write after end")
        chunk = encode_chunk(data, encoding)
        if chunk:
            self._queue.put_nowait(chunk)

    def end(self, data: Any = None, encoding: str = "utf-8") -> None:
        if data is not None:
            self.write(data, encoding)
        if not self._ended:
            self._ended = True
            self._queue.put_nowait(_END)

    async def iter_body(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self._queue.get()
            if chunk is _END:
                break
            yield chunk

    def __await__(self):
        if self._task is None:
            raise RuntimeError("request not dispatched")
        return self._task.__await__()


def raw_delivery(callback: Callable[[httpx.Response], Any]) -> ResponseHandler:
    async def on_response(response: httpx.Response) -> httpx.Response:
        result = callback(response)
        if inspect.isawaitable(result):
            await result
        return response

    return on_response


class SharedTransport(httpx.AsyncBaseTransport):
    """Lends a caller-owned transport to a per-request client without closing it."""

    def __init__(self, transport: httpx.AsyncBaseTransport) -> None:
        self._transport = transport

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        return await self._transport.handle_async_request(request)

    async def aclose(self) -> None:
        # the caller closes the wrapped transport
        return None


async def _fail(
    prepared: PreparedRequest,
    handle: RequestHandle,
    on_error: ErrorHandler | None,
    exc: Exception,
) -> Any:
    error = transport_error(exc)
    logger.warning("Couch %s %s failed: %s", prepared.method, prepared.url, error.message)
    handle.error = error
    handle.emit("error", error)
    if on_error is None:
        return None
    result = on_error(error)
    if inspect.isawaitable(result):
        result = await result
    return result


async def _run(
    client: "CouchClient",
    prepared: PreparedRequest,
    handle: RequestHandle,
    on_response: ResponseHandler,
    on_error: ErrorHandler | None,
) -> Any:
    if trace_id_var.get() is None:
        trace_id_var.set(trace_id_generator())
    logger.debug("Couch %s: %s", prepared.method, prepared.url)

    transport = SharedTransport(client.transport) if client.transport is not None else None
    async with httpx.AsyncClient(transport=transport, timeout=None) as http:
        try:
            request = http.build_request(
                method=prepared.method,
                url=prepared.url,
                headers=prepared.headers,
                content=prepared.stream if prepared.is_streaming else prepared.content,
            )
            response = await http.send(request, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return await _fail(prepared, handle, on_error, e)

        try:
            handle.response = response
            handle.emit("response", response)
            return await on_response(response)
        except httpx.RequestError as e:
            # the connection dropped while the body was read
            return await _fail(prepared, handle, on_error, e)
        finally:
            await response.aclose()


def send(
    client: "CouchClient",
    options: RequestOptions,
    on_response: ResponseHandler,
    on_error: ErrorHandler | None = None,
) -> RequestHandle:
    """
    Schedule a request on the running event loop.

    Args:
        client: Client providing the connection defaults
        options: Per-request options
        on_response: Coroutine function receiving the live response
        on_error: Called with the ErrorRecord of a connection failure

    Returns:
        RequestHandle of the scheduled request
    """
    prepared = prepare_request(client, options)
    open_body = prepared.method in BODY_METHODS and prepared.content is None and not prepared.is_streaming
    handle = RequestHandle(open_body=open_body)
    if open_body:
        prepared = replace(prepared, stream=handle.iter_body())

    handle._task = asyncio.create_task(_run(client, prepared, handle, on_response, on_error))
    return handle
