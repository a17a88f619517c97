import json
import threading
from types import SimpleNamespace
from typing import Optional

import pytest
from flask import Flask, request
from werkzeug.wrappers import Response

from hyperapi import (
    AbstractApiRequestHandler,
    ApiContext,
    ApiRequest,
    ApiRequestParser,
    ApiRequestPipeline,
    ExceptionHandler,
    NotFoundError,
    ResponseWriterHandler,
    TypedIdFormatter,
)


class _RecordingHandler(AbstractApiRequestHandler):
    def __init__(self, name: str, events: list, fail: Optional[Exception] = None, claim: bool = False) -> None:
        self.name = name
        self.events = events
        self.fail = fail
        self.claim = claim

    def handle(self, api_request) -> None:
        self.events.append(("handle", self.name))
        # the context is bound to the request being processed
        assert ApiContext.get_context().api_request is api_request
        if self.fail is not None:
            raise self.fail

    def handle_exception(self, api_request, exc: Exception) -> bool:
        self.events.append(("exception", self.name, type(exc).__name__))
        return self.claim


class _ResultHandler(AbstractApiRequestHandler):
    def handle(self, api_request) -> None:
        api_request.response_object = {"type": api_request.type, "id": api_request.id}


@pytest.fixture
def app() -> Flask:
    return Flask(__name__)


@pytest.fixture
def commits(monkeypatch) -> list:
    """
    records every call to ApiRequest.commit
    """
    calls: list = []
    original = ApiRequest.commit

    def _commit(self) -> None:
        calls.append(self)
        original(self)

    monkeypatch.setattr(ApiRequest, "commit", _commit)
    return calls


def _process(app: Flask, pipeline: ApiRequestPipeline, path: str = "/v1/widget/1", chain=None, **kwargs):
    with app.test_request_context(path, **kwargs):
        response = Response()
        result = pipeline.process(request._get_current_object(), response, chain or (lambda req, resp: None))
    return result, response


def test_successful_request(app, commits) -> None:
    events: list = []
    pipeline = ApiRequestPipeline(
        ApiRequestParser(),
        [_RecordingHandler("first", events), _ResultHandler(), ResponseWriterHandler(), _RecordingHandler("last", events)],
    )

    result, response = _process(app, pipeline)

    assert result is response
    assert response.status_code == 200
    assert json.loads(response.get_data()) == {"type": "widget", "id": "1"}
    assert response.content_type == "application/json"
    assert response.headers["X-API-Schemas"] == "http://localhost/v1/schema"
    assert events == [("handle", "first"), ("handle", "last")]
    assert len(commits) == 1
    assert not ApiContext.has_context()


def test_schemas_header_name(app, commits) -> None:
    app.config["SCHEMAS_HEADER"] = "X-Schemas"
    pipeline = ApiRequestPipeline(ApiRequestParser(), [])
    _, response = _process(app, pipeline)
    assert response.headers["X-Schemas"] == "http://localhost/v1/schema"
    assert "X-API-Schemas" not in response.headers


def test_handled_exception(app, commits) -> None:
    events: list = []
    pipeline = ApiRequestPipeline(
        ApiRequestParser(),
        [
            _RecordingHandler("first", events, claim=True),
            _RecordingHandler("failing", events, fail=NotFoundError("gone")),
            _RecordingHandler("skipped", events),
            ExceptionHandler(),
        ],
    )

    _, response = _process(app, pipeline)

    assert response.status_code == 404
    body = json.loads(response.get_data())
    assert body["type"] == "error"
    assert body["code"] == "NOT_FOUND"
    assert body["status"] == 404
    # every handler is offered the exception, also after one claimed it
    assert events == [
        ("handle", "first"),
        ("handle", "failing"),
        ("exception", "first", "NotFoundError"),
        ("exception", "failing", "NotFoundError"),
        ("exception", "skipped", "NotFoundError"),
    ]
    assert len(commits) == 1
    assert not ApiContext.has_context()


def test_unhandled_exception(app, commits) -> None:
    events: list = []
    pipeline = ApiRequestPipeline(
        ApiRequestParser(),
        [_RecordingHandler("failing", events, fail=RuntimeError("boom")), ExceptionHandler()],
        throw_errors=False,
    )

    _, response = _process(app, pipeline)

    assert response.status_code == 500
    assert events == [("handle", "failing"), ("exception", "failing", "RuntimeError")]
    assert len(commits) == 1
    assert not ApiContext.has_context()


def test_throw_errors(app, commits) -> None:
    pipeline = ApiRequestPipeline(ApiRequestParser(), [_RecordingHandler("failing", [], fail=RuntimeError("boom"))], throw_errors=True)

    with pytest.raises(RuntimeError):
        _process(app, pipeline)

    assert len(commits) == 1
    assert not ApiContext.has_context()


def test_throw_errors_from_config(app) -> None:
    app.config["THROW_ERRORS"] = "true"
    with app.app_context():
        pipeline = ApiRequestPipeline(ApiRequestParser(), [])
    assert pipeline.throw_errors is True
    assert ApiRequestPipeline(ApiRequestParser(), []).throw_errors is False


def test_handled_exceptions_are_not_thrown(app, commits) -> None:
    pipeline = ApiRequestPipeline(
        ApiRequestParser(), [_RecordingHandler("failing", [], fail=NotFoundError()), ExceptionHandler()], throw_errors=True
    )
    _, response = _process(app, pipeline)
    assert response.status_code == 404


def test_parser_errors_are_handled(app, commits) -> None:
    events: list = []
    pipeline = ApiRequestPipeline(ApiRequestParser(), [_RecordingHandler("handler", events), ExceptionHandler()])

    _, response = _process(app, pipeline, "/v1/widget?limit=many")

    assert response.status_code == 400
    assert json.loads(response.get_data())["code"] == "VALIDATION"
    assert events == [("exception", "handler", "ValidationError")]
    assert len(commits) == 1


def test_declined_request(app, commits) -> None:
    events: list = []
    chained: list = []
    pipeline = ApiRequestPipeline(ApiRequestParser(), [_RecordingHandler("handler", events)])

    def _chain(req, resp):
        chained.append(req.path)
        # the context is still bound while the chain runs
        assert ApiContext.has_context()
        return "not an api response"

    result, response = _process(app, pipeline, "/index.html", chain=_chain)

    assert result == "not an api response"
    assert chained == ["/index.html"]
    assert events == []
    assert commits == []
    assert "X-API-Schemas" not in response.headers
    assert not ApiContext.has_context()


def test_declined_request_errors_are_propagated(app, commits) -> None:
    events: list = []
    pipeline = ApiRequestPipeline(ApiRequestParser(), [_RecordingHandler("handler", events, claim=True)])

    def _chain(req, resp):
        raise KeyError("not ours")

    with pytest.raises(KeyError):
        _process(app, pipeline, "/index.html", chain=_chain)

    assert events == []
    assert commits == []
    assert not ApiContext.has_context()


def test_early_commit(app, commits) -> None:
    class _CommittingHandler(AbstractApiRequestHandler):
        def handle(self, api_request) -> None:
            api_request.response_code = 202
            api_request.commit()
            api_request.response_code = 500

    pipeline = ApiRequestPipeline(ApiRequestParser(), [_CommittingHandler()])
    _, response = _process(app, pipeline)

    # the second commit doesn't change the response
    assert response.status_code == 202
    assert len(commits) == 2
    assert commits[0] is commits[1]


def test_context_collaborators(app) -> None:
    seen: list = []
    id_formatter = TypedIdFormatter()
    url_builder = SimpleNamespace(resource_collection=lambda type: None)

    class _ContextHandler(AbstractApiRequestHandler):
        def handle(self, api_request) -> None:
            context = ApiContext.get_context()
            seen.append((context.schema_factory, context.id_formatter, context.url_builder))

    schema_factory = object()
    pipeline = ApiRequestPipeline(
        ApiRequestParser(),
        [_ContextHandler()],
        schema_factory=schema_factory,
        id_formatter=id_formatter,
        url_builder_factory=lambda api_request, formatter: url_builder,
    )
    _, response = _process(app, pipeline)

    assert seen == [(schema_factory, id_formatter, url_builder)]
    # no schema collection url, no header
    assert "X-API-Schemas" not in response.headers


def test_concurrent_requests_have_their_own_context(app) -> None:
    seen: dict = {}
    barrier = threading.Barrier(4)

    class _WaitingHandler(AbstractApiRequestHandler):
        def handle(self, api_request) -> None:
            barrier.wait()
            seen[api_request.id] = ApiContext.get_context().api_request.id

    pipeline = ApiRequestPipeline(ApiRequestParser(), [_WaitingHandler()])
    threads = [threading.Thread(target=_process, args=(app, pipeline, f"/v1/widget/{i}")) for i in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert seen == {str(i): str(i) for i in range(4)}
