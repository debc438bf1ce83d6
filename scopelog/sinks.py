from __future__ import annotations

import sys
from typing import Protocol, TextIO, runtime_checkable

import structlog


@runtime_checkable
class LineSink(Protocol):
    def write(self, line: str) -> None: ...


class StreamSink:
    """Writes one rendered line per call to a text stream."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream if stream is not None else sys.stdout

    def write(self, line: str) -> None:
        self.stream.write(line + "\n")
        self.stream.flush()


class MemorySink:
    """Keeps rendered lines in memory (tests and demos)."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def write(self, line: str) -> None:
        self.lines.append(line)

    def clear(self) -> None:
        self.lines.clear()


class StructlogSink:
    """Forwards rendered lines into the application's structlog pipeline."""

    def __init__(self, logger_name: str = "scopelog") -> None:
        self._logger = structlog.get_logger(logger_name)

    def write(self, line: str) -> None:
        self._logger.info(line)


def stream_sink_for(output: str) -> StreamSink:
    if output == "stdout":
        return StreamSink(sys.stdout)
    if output == "stderr":
        return StreamSink(sys.stderr)
    raise ValueError(f"Unknown output stream: {output}")
