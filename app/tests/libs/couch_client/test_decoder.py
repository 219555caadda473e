import httpx
import pytest

from libs.couch_client import CouchClient
from libs.couch_client.decoder import DecoderState, JsonResponse
from libs.couch_client.errors import ErrorName, transport_error


def record_events(response: JsonResponse) -> list:
    events = []
    for name in ("chunk", "data", "body", "end", "close"):
        response.on(name, lambda payload, name=name: events.append((name, payload)))
    return events


class TestJsonResponse:
    def test_success(self):
        response = JsonResponse(200)
        events = record_events(response)

        response.feed('{"ok":')
        response.feed(" true}")
        response.finish()

        assert events == [("data", {"ok": True}), ("end", {"ok": True})]
        assert response.state == DecoderState.TERMINATED
        assert response.ok
        assert response.result == {"ok": True}

    def test_chunk_for_complete_fragments(self):
        response = JsonResponse(200)
        events = record_events(response)

        response.feed('{"a": 1}')
        response.finish()

        assert events == [("chunk", {"a": 1}), ("data", {"a": 1}), ("end", {"a": 1})]

    def test_broken_body(self):
        response = JsonResponse(200)
        events = record_events(response)

        response.feed("{ broken }")
        response.finish()
        response.feed('{"late": true}')
        response.finish()

        assert [name for name, _ in events] == ["body", "close"]
        assert events[0][1] == "{ broken }"
        error = events[1][1]
        assert error.name == ErrorName.DECODE_ERROR
        assert error.code == 200
        assert response.error is error
        assert response.ok is False

    def test_error_status(self):
        response = JsonResponse(404)
        events = record_events(response)

        response.feed('{"error":"not_found","reason":"missing"}')
        response.finish()

        assert [name for name, _ in events] == ["chunk", "close"]
        error = events[-1][1]
        assert error.code == 404
        assert error.name == ErrorName.NOT_FOUND
        assert error.message == "not found: missing"

    def test_abort(self):
        response = JsonResponse(200)
        events = record_events(response)
        error = transport_error(OSError("reset"))

        response.feed('{"partial":')
        response.abort(error)
        response.finish()

        assert events == [("close", error)]

    def test_abort_after_terminated_is_ignored(self):
        response = JsonResponse(200)
        events = record_events(response)

        response.feed("[]")
        response.finish()
        response.abort(transport_error(OSError("reset")))

        assert [name for name, _ in events] == ["chunk", "data", "end"]
        assert response.error is None

    def test_failing_data_listener(self):
        response = JsonResponse(200)
        events = record_events(response)

        def fail(value):
            raise RuntimeError("listener failed")

        response.on("data", fail)
        response.feed('{"a": 1}')
        with pytest.raises(RuntimeError):
            response.finish()

        assert [name for name, _ in events] == ["chunk", "data", "close"]
        assert events[-1][1].name == ErrorName.DECODE_ERROR
        assert events[-1][1].message == "listener failed"
        assert response.terminated

    def test_failing_chunk_listener(self):
        response = JsonResponse(200)

        def fail(value):
            raise RuntimeError("listener failed")

        response.on("chunk", fail)
        events = record_events(response)

        with pytest.raises(RuntimeError):
            response.feed("[1]")
        response.finish()

        assert [name for name, _ in events] == ["close"]


class TestRequestJson:
    @pytest.mark.asyncio
    async def test_document(self, mock_transport):
        client = CouchClient("http://localhost:5984/db", transport=mock_transport(json={"_id": "doc", "_rev": "1-a"}))
        events = []

        def on_response(response):
            assert response.state == DecoderState.RECEIVING
            response.on("end", lambda doc: events.append(doc))

        result = await client.get("doc", on_response)

        assert isinstance(result, JsonResponse)
        assert result.status_code == 200
        assert result.result == {"_id": "doc", "_rev": "1-a"}
        assert events == [{"_id": "doc", "_rev": "1-a"}]

    @pytest.mark.asyncio
    async def test_not_found(self, mock_transport):
        transport = mock_transport(status_code=404, json={"error": "not_found", "reason": "deleted"})
        client = CouchClient(transport=transport)
        errors = []

        await client.get("db/doc", lambda response: response.on("close", errors.append))

        assert errors[0].code == 404
        assert errors[0].name == ErrorName.NOT_FOUND
        assert errors[0].message == "not found: deleted"

    @pytest.mark.asyncio
    async def test_async_callback(self, mock_transport):
        client = CouchClient(transport=mock_transport(json=[1, 2, 3]))
        seen = []

        async def on_response(response):
            response.on("data", seen.append)

        await client.get("", on_response)

        assert seen == [[1, 2, 3]]

    @pytest.mark.asyncio
    async def test_put_body_and_query(self, mock_transport):
        transport = mock_transport(status_code=201, json={"ok": True, "id": "doc", "rev": "1-a"})
        client = CouchClient("http://localhost:5984/db?batch=ok", transport=transport)

        result = await client.put({"path": "doc", "query": {"new_edits": False}}, None, {"title": "x"})

        request = transport.requests[0]
        assert str(request.url) == "http://localhost:5984/db/doc?new_edits=false&batch=ok"
        assert request.content == b'{"title": "x"}'
        assert result.result["rev"] == "1-a"

    @pytest.mark.asyncio
    async def test_connection_failure_closes_response(self, mock_transport):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = CouchClient(transport=mock_transport(refuse))
        delivered = []
        closed = []

        def on_response(response):
            delivered.append(response)
            response.on("close", closed.append)

        handle = client.get("doc", on_response)
        transport_errors = []
        handle.on("error", transport_errors.append)
        result = await handle

        assert delivered == [result]
        assert result.status_code is None
        assert closed == transport_errors
        assert closed[0].name == ErrorName.TRANSPORT_ERROR

    @pytest.mark.asyncio
    async def test_connection_reset_mid_body(self, mock_transport):
        class ResetStream(httpx.AsyncByteStream):
            async def __aiter__(self):
                yield b'{"rows": ['
                raise httpx.ReadError("connection reset")

        client = CouchClient(transport=mock_transport(lambda request: httpx.Response(200, stream=ResetStream())))
        recorded = {}

        def on_response(response):
            recorded["events"] = record_events(response)

        handle = client.get("_all_docs", on_response)
        result = await handle

        events = recorded["events"]
        assert [name for name, _ in events] == ["close"]
        error = events[0][1]
        assert error.name == ErrorName.TRANSPORT_ERROR
        assert error.message == "connection reset"
        assert result.status_code == 200
        assert result.error is error
        assert handle.error is error

    @pytest.mark.asyncio
    async def test_broken_body(self, mock_transport):
        client = CouchClient(transport=mock_transport(content=b"{ broken }"))
        recorded = {}

        def on_response(response):
            recorded["events"] = record_events(response)

        await client.get("doc", on_response)

        events = recorded["events"]
        assert [name for name, _ in events] == ["body", "close"]
        assert events[0][1] == "{ broken }"
        assert events[1][1].name == ErrorName.DECODE_ERROR

    @pytest.mark.asyncio
    async def test_failing_listener_still_closes(self, mock_transport):
        client = CouchClient(transport=mock_transport(json={"ok": True}))
        closed = []

        def fail(value):
            raise RuntimeError("listener failed")

        def on_response(response):
            response.on("data", fail)
            response.on("end", lambda value: closed.append(("end", value)))
            response.on("close", lambda error: closed.append(("close", error)))

        with pytest.raises(RuntimeError, match="listener failed"):
            await client.get("doc", on_response)

        assert len(closed) == 1
        assert closed[0][0] == "close"
        assert closed[0][1].name == ErrorName.DECODE_ERROR
