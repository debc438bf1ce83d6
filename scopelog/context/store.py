"""Continuation-local holder of the current context stack.

The stack lives in a ``contextvars.ContextVar``. asyncio copies the current
context into every task and scheduled callback, so each forked branch starts
from the stack that was current when it was created and never sees frames
pushed later by a sibling. Stacks are tuples: entering a scope sets a new
tuple, it never appends to a shared one.
"""

from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, ParamSpec, TypeVar

from scopelog.context.frames import EMPTY_STACK, ContextFrame, ContextStack

P = ParamSpec("P")
T = TypeVar("T")


class ContextStore:
    def __init__(self, name: str = "scopelog_stack") -> None:
        self._var: ContextVar[ContextStack] = ContextVar(name, default=EMPTY_STACK)

    def current(self) -> ContextStack:
        return self._var.get()

    def push(self, frame: ContextFrame) -> ContextStack:
        """Return the current stack plus ``frame``; the store itself is untouched."""
        return (*self._var.get(), frame)

    def with_stack(self, stack: ContextStack, fn: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
        token = self._var.set(tuple(stack))
        try:
            return fn(*args, **kwargs)
        finally:
            self._var.reset(token)

    async def with_stack_async(
        self,
        stack: ContextStack,
        fn: Callable[P, Awaitable[T]],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> T:
        token = self._var.set(tuple(stack))
        try:
            return await fn(*args, **kwargs)
        finally:
            self._var.reset(token)

    @contextmanager
    def scoped(self, stack: ContextStack) -> Iterator[ContextStack]:
        token = self._var.set(tuple(stack))
        try:
            yield stack
        finally:
            self._var.reset(token)

    def bind(self, fn: Callable[P, T]) -> Callable[P, T]:
        """
        Capture the current stack for a callback run outside this context.

        Thread pools (``loop.run_in_executor``, ``concurrent.futures``) do not
        copy contextvars; a bound callable restores the captured stack itself.
        """
        captured = self._var.get()

        @functools.wraps(fn)
        def bound(*args: P.args, **kwargs: P.kwargs) -> T:
            return self.with_stack(captured, fn, *args, **kwargs)

        return bound

    def reset(self) -> None:
        """Clear the stack in the current context (used by tests)."""
        self._var.set(EMPTY_STACK)


_STORE: ContextStore | None = None


def get_store() -> ContextStore:
    global _STORE
    if _STORE is None:
        _STORE = ContextStore()
    return _STORE


def reset_store() -> None:
    get_store().reset()


def current_stack() -> ContextStack:
    return get_store().current()
