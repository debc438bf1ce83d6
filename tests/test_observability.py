import json
import logging

import pytest
import structlog
from structlog.testing import capture_logs

from scopelog.context.frames import ContextFrame
from scopelog.context.store import get_store
from scopelog.logger import get_logger, set_default_sink
from scopelog.observability.logging import configure_logging, merge_scope_context, reset_logging
from scopelog.sinks import StructlogSink


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    reset_logging()
    yield
    reset_logging()
    root.handlers = handlers
    root.setLevel(level)


def test_merge_scope_context_adds_chain_and_data() -> None:
    stack = (ContextFrame(label="Billing", data={"tenant": "acme", "k": 1}), ContextFrame(label="Invoice"))
    with get_store().scoped(stack):
        event = merge_scope_context(None, "info", {"event": "charged", "k": 2})

    assert event == {"event": "charged", "k": 2, "scope": "Billing > Invoice", "tenant": "acme"}


def test_merge_scope_context_without_scope_is_noop() -> None:
    assert merge_scope_context(None, "info", {"event": "idle"}) == {"event": "idle"}


def test_configure_logging_renders_scope_as_json(restore_root_logger, capsys) -> None:
    configure_logging(level=logging.INFO, renderer="json")
    # Second call is a no-op.
    configure_logging(level=logging.DEBUG, renderer="console")

    with get_store().scoped((ContextFrame(label="Billing", data={"tenant": "acme"}),)):
        structlog.get_logger("billing").info("charged", amount=3)

    payload = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert payload["event"] == "charged"
    assert payload["scope"] == "Billing"
    assert payload["tenant"] == "acme"
    assert payload["amount"] == 3
    assert payload["level"] == "info"
    assert logging.getLogger().level == logging.INFO


def test_configure_logging_rejects_unknown_renderer(restore_root_logger) -> None:
    with pytest.raises(ValueError):
        configure_logging(renderer="xml")


def test_structlog_sink_forwards_rendered_lines() -> None:
    with capture_logs() as logs:
        StructlogSink("scopelog.test").write("[INFO] A: hello")

    assert logs == [{"event": "[INFO] A: hello", "log_level": "info"}]


def test_default_structlog_sink_routes_context_logger_lines() -> None:
    with capture_logs() as logs:
        set_default_sink(StructlogSink("scopelog.test"))
        with get_store().scoped((ContextFrame(label="Job", data={"n": 1}),)):
            get_logger().info("started")

    assert logs == [{"event": '[INFO] Job: started ({"n":1})', "log_level": "info"}]
