import logging

from fastapi import FastAPI
from fastapi.testclient import TestClient

from quote_engine.core.observability import global_exception_handler, request_logging_middleware


def _app_with_failing_route() -> FastAPI:
    app = FastAPI()
    app.add_exception_handler(Exception, global_exception_handler)
    app.middleware("http")(request_logging_middleware)

    @app.get("/boom")
    def boom():
        raise RuntimeError("boom")

    return app


def test_unhandled_error_reports_the_request_id_the_middleware_logged(caplog):
    client = TestClient(_app_with_failing_route(), raise_server_exceptions=False)

    with caplog.at_level(logging.ERROR, logger="quote_engine"):
        r = client.get("/boom")

    assert r.status_code == 500
    body = r.json()
    assert body["code"] == "INTERNAL_SERVER_ERROR"
    logged = {rec.request_id for rec in caplog.records if rec.getMessage() == "http_request_failed"}
    assert logged == {body["request_id"]}
    assert r.headers["X-Request-ID"] == body["request_id"]


def test_client_request_id_is_echoed_on_errors():
    client = TestClient(_app_with_failing_route(), raise_server_exceptions=False)

    r = client.get("/boom", headers={"X-Request-ID": "req-42"})

    assert r.status_code == 500
    assert r.json()["request_id"] == "req-42"
