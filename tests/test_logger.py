import json
from datetime import date

from scopelog.context.frames import ContextFrame
from scopelog.context.store import get_store
from scopelog.instrumentation import scope
from scopelog.logger import ContextLogger, flatten_stack, get_logger, render_line
from scopelog.sinks import MemorySink


def test_empty_context_renders_bare_message(sink: MemorySink) -> None:
    get_logger().info("Booting")
    assert sink.lines == ["[INFO] Booting"]


def test_render_line_with_labels_and_data() -> None:
    stack = (ContextFrame(label="A", data={"x": 1}), ContextFrame(label="B"))
    assert render_line("info", "hi", stack) == '[INFO] A > B: hi ({"x":1})'


def test_unlabeled_frames_contribute_data_only() -> None:
    stack = (ContextFrame(data={"request_id": "r1"}), ContextFrame(label="", data={}))
    assert render_line("DEBUG", "tick", stack) == '[DEBUG] tick ({"request_id":"r1"})'


def test_flatten_stack_merges_outermost_first() -> None:
    stack = (
        ContextFrame(label="Outer", data={"k": "outer", "a": 1}),
        ContextFrame(label=None, data={"k": "middle"}),
        ContextFrame(label="Inner", data={"k": "inner"}),
    )
    labels, merged = flatten_stack(stack)
    assert labels == ["Outer", "Inner"]
    assert merged == {"k": "inner", "a": 1}


def test_extra_data_wins_over_frames() -> None:
    stack = (ContextFrame(label="S", data={"k": "frame"}),)
    assert render_line("INFO", "m", stack, {"k": "call"}) == '[INFO] S: m ({"k":"call"})'


def test_unserialisable_values_fall_back_to_str() -> None:
    line = render_line("INFO", "dated", (), {"day": date(2024, 1, 2), "name": "Zoë"})
    payload = json.loads(line[line.index("(") + 1 : -1])
    assert payload == {"day": "2024-01-02", "name": "Zoë"}


def test_logger_levels_and_keyword_fields(sink: MemorySink) -> None:
    logger = ContextLogger(name="levels")
    with get_store().scoped((ContextFrame(label="Job"),)):
        logger.debug("d")
        logger.warning("w", {"a": 1}, b=2)
        logger.error("e", attempt=3)
        logger.log("notice", "n")

    assert sink.lines == [
        "[DEBUG] Job: d",
        '[WARNING] Job: w ({"a":1,"b":2})',
        '[ERROR] Job: e ({"attempt":3})',
        "[NOTICE] Job: n",
    ]


def test_explicit_sink_is_used_over_default(sink: MemorySink) -> None:
    private = MemorySink()
    ContextLogger(private).info("only here")

    assert private.lines == ["[INFO] only here"]
    assert sink.lines == []


def test_service_chain_scenario(sink: MemorySink) -> None:
    logger = get_logger()

    @scope(data={"customServiceCLogData": "Hello, world!"})
    class C:
        def run(self) -> None:
            logger.info("Running", {"customLogMessageData": "How are you?"})

    @scope(label="CustomServiceBLabel")
    class B:
        def __init__(self) -> None:
            self.c = C()

        def run(self) -> None:
            self.c.run()

    B().run()

    assert sink.lines == [
        '[INFO] CustomServiceBLabel > C: Running '
        '({"customServiceCLogData":"Hello, world!","customLogMessageData":"How are you?"})'
    ]


def test_self_referencing_data_does_not_break_logging(sink: MemorySink) -> None:
    data: dict = {"a": 1}
    data["self"] = data

    get_logger().info("loop", data)

    assert sink.lines == ['[INFO] loop ({"a":1,"self":{"a":1,"self":"<cycle>"}})']


def test_non_string_keys_are_stringified(sink: MemorySink) -> None:
    get_logger().info("keys", {(1, 2): "x", "y": 2})

    assert sink.lines == ['[INFO] keys ({"(1, 2)":"x","y":2})']


def test_non_finite_floats_render_as_null(sink: MemorySink) -> None:
    get_logger().info("ratios", {"nan": float("nan"), "inf": float("-inf"), "ok": 0.5})

    line = sink.lines[0]
    assert line == '[INFO] ratios ({"nan":null,"inf":null,"ok":0.5})'
    assert json.loads(line[line.index("(") + 1 : -1]) == {"nan": None, "inf": None, "ok": 0.5}


def test_broken_str_falls_back_to_default_repr() -> None:
    class Unprintable:
        def __str__(self) -> str:
            raise RuntimeError("no")

    line = render_line("INFO", "odd", (), {"value": Unprintable()})
    assert line.startswith('[INFO] odd ({"value":"<')
    assert "Unprintable object at" in line
