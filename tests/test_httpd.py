import io

import pytest

from embsvc.http import Method
from embsvc.httpd import (
    Body,
    Handler,
    Middleware,
    MiddlewareRegistry,
    Request,
    RequestDelegate,
    Response,
    Sessions,
    SessionState,
    app_middleware,
    sessions_middleware,
)


class FakeDelegate(RequestDelegate):
    def __init__(self, headers=None, query=None, body=b""):
        self._headers = headers or {}
        self._query = query
        self._body = io.BytesIO(body)

    def header(self, name):
        return self._headers.get(name)

    def query_string(self):
        return self._query

    def read(self, size):
        return self._body.read(size)


def make_request(**kwargs):
    return Request(FakeDelegate(**kwargs))


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def counter_random():
    state = {"n": 0}

    def get_random():
        state["n"] += 1
        return bytes([state["n"]] * 16)

    return get_random


# Body


def test_empty_body():
    body = Body()
    assert body.size() == 0
    assert body.is_empty()


def test_body_from_text_uses_utf8():
    body = Body.from_value("héllo")
    assert body.data == "héllo".encode("utf-8")
    assert body.size() == len("héllo".encode("utf-8"))
    assert not body.is_empty()


def test_body_from_empty_bytes_is_empty():
    assert Body.from_value(b"").is_empty()


def test_stream_of_unknown_length_is_not_empty():
    body = Body(reader=io.BytesIO(b"abc"))
    assert body.size() is None
    assert not body.is_empty()


def test_body_from_file_knows_length(tmp_path):
    path = tmp_path / "data.bin"
    path.write_bytes(b"0123456789")
    with open(path, "rb") as f:
        body = Body.from_value(f)
        assert body.size() == 10
        assert body.reader is f


def test_body_from_value_keeps_body():
    body = Body.from_value(b"x")
    assert Body.from_value(body) is body


def test_body_from_unsupported_value():
    with pytest.raises(TypeError):
        Body.from_value(3.5)


# Request


def test_request_headers_and_query():
    req = make_request(
        headers={"content-type": "text/plain", "content-length": "42"},
        query="a=1",
    )
    assert req.content_type() == "text/plain"
    assert req.content_len() == 42
    assert req.query_string() == "a=1"
    assert req.header("missing") is None


@pytest.mark.parametrize("value", ["abc", "-1", "", "1.5"])
def test_request_content_len_malformed(value):
    assert make_request(headers={"content-length": value}).content_len() is None


def test_request_as_bytes_reads_everything():
    payload = bytes(range(256)) * 40
    assert make_request(body=payload).as_bytes() == payload


def test_request_as_string():
    assert make_request(body="grüße".encode()).as_string() == "grüße"


def test_request_as_string_rejects_invalid_utf8():
    with pytest.raises(UnicodeDecodeError):
        make_request(body=b"\xff\xfe").as_string()


def test_request_without_app_raises():
    with pytest.raises(LookupError):
        make_request().app


# Response


def test_response_defaults():
    resp = Response.ok()
    assert resp.status == 200
    assert resp.status_message is None
    assert resp.headers == {}
    assert resp.body.is_empty()
    assert resp.new_session_state is None


def test_redirect():
    resp = Response.redirect("/home")
    assert resp.status == 301
    assert resp.headers == {"location": "/home"}


def test_response_from_values():
    assert Response.from_value(None).status == 200
    assert Response.from_value(404).status == 404
    text = Response.from_value("hi")
    assert text.status == 200
    assert text.body.data == b"hi"
    assert Response.from_value(b"raw").body.data == b"raw"


def test_response_from_error():
    resp = Response.from_error(ValueError("boom"))
    assert resp.status == 500
    assert resp.status_message == "boom"
    assert b"boom" in resp.body.data


def test_builders_return_copies():
    base = Response.ok()
    built = (
        base.with_status(201)
        .with_status_message("Created")
        .with_content_type("text/html")
        .with_content_encoding("gzip")
        .with_content_len(12)
    )
    assert built.status == 201
    assert built.status_message == "Created"
    assert built.headers == {
        "content-type": "text/html",
        "content-encoding": "gzip",
        "content-length": "12",
    }
    assert base.status == 200
    assert base.headers == {}


def test_negative_content_len_rejected():
    with pytest.raises(ValueError):
        Response.ok().with_content_len(-1)


def test_session_state_variants():
    data = {"k": "v"}
    assert SessionState.new(data).data is data
    assert not SessionState.new(data).is_invalidate
    assert SessionState.invalidate().is_invalidate


# Registry


def test_builder_registers_handlers():
    registry = MiddlewareRegistry()
    result = (
        registry.at("/a")
        .get(lambda r: Response.ok())
        .at("/b")
        .post(lambda r: Response.new(201))
    )
    assert result is registry
    handlers = registry.apply_middleware()
    assert [(h.uri, h.method) for h in handlers] == [
        ("/a", Method.GET),
        ("/b", Method.POST),
    ]
    assert handlers[1].handler(make_request()).status == 201


@pytest.mark.parametrize(
    "name, method",
    [("put", Method.PUT), ("delete", Method.DELETE), ("head", Method.HEAD)],
)
def test_builder_methods(name, method):
    registry = MiddlewareRegistry()
    getattr(registry.at(7), name)(lambda r: Response.ok())
    (handler,) = registry.apply_middleware()
    assert handler.uri == "7"
    assert handler.method is method


def test_last_middleware_runs_first():
    calls = []

    def tracer(tag):
        def mw(request, handler):
            calls.append(tag)
            return handler(request)

        return mw

    registry = MiddlewareRegistry()
    registry.at("/").get(lambda r: calls.append("handler") or Response.ok())
    registry.at("/").middleware(tracer("first"))
    registry.middleware(Middleware("/", tracer("second")))
    (handler,) = registry.apply_middleware()
    assert handler.handler(make_request()).status == 200
    assert calls == ["second", "first", "handler"]


def test_register_passes_registry():
    registry = MiddlewareRegistry()
    result = registry.register(
        lambda r: r.handler(Handler("/x", Method.GET, lambda q: Response.ok()))
    )
    assert result is registry
    assert [h.uri for h in registry.apply_middleware()] == ["/x"]


def test_app_middleware_attaches_state():
    app = {"counter": 0}
    mw = app_middleware(app)

    def handler(request):
        request.app["counter"] += 1
        return Response.ok()

    mw(make_request(), handler)
    mw(make_request(), handler)
    assert app["counter"] == 2


# Sessions


def _new_session_handler(data):
    return lambda request: Response.ok().with_new_session_state(SessionState.new(data))


def test_new_session_sets_cookie():
    sessions = Sessions(4, lambda: bytes(range(16)))
    mw = sessions_middleware(sessions)
    resp = mw(make_request(), _new_session_handler({"user": "alice"}))
    assert resp.headers["set-cookie"] == "SESSIONID=000102030405060708090a0b0c0d0e0f"
    assert resp.new_session_state is None
    assert len(sessions) == 1


def test_session_is_visible_to_later_requests():
    sessions = Sessions(4, counter_random())
    mw = sessions_middleware(sessions)
    cookie = mw(make_request(), _new_session_handler({"user": "alice"})).headers[
        "set-cookie"
    ]
    seen = []
    resp = mw(
        make_request(headers={"cookie": cookie}),
        lambda r: seen.append(r.session) or Response.ok(),
    )
    assert resp.status == 200
    assert seen == [{"user": "alice"}]


def test_request_without_cookie_has_no_session():
    mw = sessions_middleware(Sessions(4, counter_random()))
    seen = []
    mw(make_request(), lambda r: seen.append(r.session) or Response.ok())
    assert seen == [None]


def test_cookie_with_leading_space_is_not_matched():
    mw = sessions_middleware(Sessions(4, counter_random()))
    cookie = mw(make_request(), _new_session_handler({"a": 1})).headers["set-cookie"]
    seen = []
    mw(
        make_request(headers={"cookie": "other=1; " + cookie}),
        lambda r: seen.append(r.session) or Response.ok(),
    )
    assert seen == [None]


def test_session_limit_gives_429():
    sessions = Sessions(1, counter_random())
    mw = sessions_middleware(sessions)
    mw(make_request(), _new_session_handler({"a": 1}))
    resp = mw(make_request(), _new_session_handler({"b": 2}))
    assert resp.status == 429
    assert len(sessions) == 1


def test_replacing_existing_session_ignores_limit():
    sessions = Sessions(1, counter_random())
    mw = sessions_middleware(sessions)
    cookie = mw(make_request(), _new_session_handler({"a": 1})).headers["set-cookie"]
    resp = mw(make_request(headers={"cookie": cookie}), _new_session_handler({"b": 2}))
    assert resp.status == 200
    assert resp.headers["set-cookie"] != cookie
    assert len(sessions) == 1


def test_invalidate_removes_session():
    sessions = Sessions(4, counter_random())
    mw = sessions_middleware(sessions)
    cookie = mw(make_request(), _new_session_handler({"a": 1})).headers["set-cookie"]
    resp = mw(
        make_request(headers={"cookie": cookie}),
        lambda r: Response.ok().with_new_session_state(SessionState.invalidate()),
    )
    assert resp.new_session_state is None
    assert len(sessions) == 0
    seen = []
    mw(
        make_request(headers={"cookie": cookie}),
        lambda r: seen.append(r.session) or Response.ok(),
    )
    assert seen == [None]


def test_idle_session_expires():
    clock = FakeClock()
    sessions = Sessions(1, counter_random(), clock=clock)
    mw = sessions_middleware(sessions)
    cookie = mw(make_request(), _new_session_handler({"a": 1})).headers["set-cookie"]

    seen = []
    clock.now = 1199.0
    mw(
        make_request(headers={"cookie": cookie}),
        lambda r: seen.append(r.session) or Response.ok(),
    )
    clock.now = 1199.0 + 1201.0
    mw(
        make_request(headers={"cookie": cookie}),
        lambda r: seen.append(r.session) or Response.ok(),
    )
    assert seen == [{"a": 1}, None]
    assert len(sessions) == 0


def test_expired_sessions_are_cleaned_before_limit_check():
    clock = FakeClock()
    sessions = Sessions(1, counter_random(), clock=clock)
    mw = sessions_middleware(sessions)
    mw(make_request(), _new_session_handler({"a": 1}))
    clock.now = 5000.0
    resp = mw(make_request(), _new_session_handler({"b": 2}))
    assert resp.status == 200
    assert "set-cookie" in resp.headers
    assert len(sessions) == 1


def test_random_source_must_give_sixteen_bytes():
    mw = sessions_middleware(Sessions(4, lambda: b"short"))
    with pytest.raises(ValueError):
        mw(make_request(), _new_session_handler({"a": 1}))


def test_handler_error_propagates_through_sessions():
    mw = sessions_middleware(Sessions(4, counter_random()))

    def failing(request):
        raise RuntimeError("handler failed")

    with pytest.raises(RuntimeError, match="handler failed"):
        mw(make_request(), failing)