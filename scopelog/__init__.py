"""Context-propagating structured logging.

Instrumented scopes push frames onto a continuation-local stack; log lines
render the label chain and merged data of every frame still active.
"""

from scopelog.context.frames import ContextFrame, ContextStack
from scopelog.context.store import ContextStore, current_stack, get_store, reset_store
from scopelog.instrumentation import ScopedProxy, instrument, scope, scoped_method, unwrap
from scopelog.logger import ContextLogger, get_logger, render_line, set_default_sink
from scopelog.models.schemas import ScopeDescriptor, ScopeOverride
from scopelog.sinks import LineSink, MemorySink, StreamSink, StructlogSink

__all__ = [
    "ContextFrame",
    "ContextLogger",
    "ContextStack",
    "ContextStore",
    "LineSink",
    "MemorySink",
    "ScopeDescriptor",
    "ScopeOverride",
    "ScopedProxy",
    "StreamSink",
    "StructlogSink",
    "current_stack",
    "get_logger",
    "get_store",
    "instrument",
    "render_line",
    "reset_store",
    "scope",
    "scoped_method",
    "set_default_sink",
    "unwrap",
]
