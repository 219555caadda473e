"""
Streaming JSON response decoding.

A ``JsonResponse`` is handed to the caller as soon as the response headers
arrive and then emits, in order:

    chunk  (zero or more) every received fragment that happens to be a
           complete JSON value on its own
    data   the parsed body, only on success
    body   the raw body text, only if a successful response is not JSON
    end    terminal, success, carries the parsed body
    close  terminal, failure, carries an ErrorRecord

Exactly one terminal event is emitted per request.
"""

import inspect
import json
import logging
from collections.abc import Callable, Mapping
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import httpx

from .errors import ErrorRecord, decode_error, make_error
from .events import EventEmitter
from .models import RequestOptions
from .transport import RequestHandle, send

if TYPE_CHECKING:
    from .client import CouchClient

logger = logging.getLogger(__name__)


class DecoderState(StrEnum):
    RECEIVING = "receiving"
    DECODING = "decoding"
    TERMINATED = "terminated"


class JsonResponse(EventEmitter):
    def __init__(self, status_code: int | None = None, headers: Mapping[str, str] | None = None) -> None:
        super().__init__()
        self.status_code = status_code
        self.headers = headers or {}
        self.state = DecoderState.RECEIVING
        self.result: Any = None
        self.error: ErrorRecord | None = None
        self._buffer: list[str] = []

    @property
    def terminated(self) -> bool:
        return self.state == DecoderState.TERMINATED

    @property
    def ok(self) -> bool:
        return self.terminated and self.error is None

    def feed(self, fragment: str) -> None:
        if self.state != DecoderState.RECEIVING or not fragment:
            return

        self._buffer.append(fragment)
        # fragments rarely align with JSON value boundaries
        try:
            value = json.loads(fragment)
        except ValueError:
            return
        self._emit_or_close("chunk", value)

    def finish(self) -> None:
        if self.state != DecoderState.RECEIVING:
            return

        self.state = DecoderState.DECODING
        body = "".join(self._buffer)
        self._buffer = []

        if self.status_code is None or self.status_code >= 400:
            self._terminate("close", make_error(self.status_code, body))
            return

        try:
            value = json.loads(body)
        except ValueError as e:
            logger.debug("Undecodable response body (status=%s): %s", self.status_code, e)
            try:
                self.emit("body", body)
            finally:
                self._terminate("close", decode_error(self.status_code, e))
            return

        self.result = value
        self._emit_or_close("data", value)
        self._terminate("end", value)

    def abort(self, error: ErrorRecord) -> None:
        if self.terminated:
            return
        self._buffer = []
        self._terminate("close", error)

    def _emit_or_close(self, event: str, payload: Any) -> None:
        # a failing listener still ends the request with a single close
        try:
            self.emit(event, payload)
        except Exception as e:
            self._terminate("close", decode_error(self.status_code, e))
            raise

    def _terminate(self, event: str, payload: Any) -> None:
        self.state = DecoderState.TERMINATED
        if event == "close":
            self.error = payload
        self.emit(event, payload)


class JsonDelivery:
    """Connects the raw transport callbacks to a JsonResponse."""

    def __init__(self, callback: Callable[[JsonResponse], Any]) -> None:
        self._callback = callback
        self.response: JsonResponse | None = None

    async def _deliver(self, response: JsonResponse) -> None:
        self.response = response
        result = self._callback(response)
        if inspect.isawaitable(result):
            await result

    async def on_response(self, response: httpx.Response) -> JsonResponse:
        decoded = JsonResponse(response.status_code, response.headers)
        await self._deliver(decoded)
        async for fragment in response.aiter_text():
            decoded.feed(fragment)
        decoded.finish()
        return decoded

    async def on_error(self, error: ErrorRecord) -> JsonResponse:
        if self.response is None:
            await self._deliver(JsonResponse())
        self.response.abort(error)
        return self.response


def request_json(
    client: "CouchClient",
    options: RequestOptions,
    callback: Callable[[JsonResponse], Any],
) -> RequestHandle:
    delivery = JsonDelivery(callback)
    return send(client, options, delivery.on_response, delivery.on_error)
