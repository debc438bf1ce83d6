"""Scope instrumentation: push a context frame around every method call.

Three entry points share the same wrappers:

* ``@scope(...)`` decorates a class and wraps its public methods in place.
* ``@scoped_method(...)`` wraps a single method explicitly.
* ``instrument(obj, ...)`` wraps an existing instance in a ``ScopedProxy``
  without touching its class.

Each intercepted call resolves its frame at call time (the instance may
change ``log_context`` between calls), pushes ``current + (frame,)`` and runs
the original body under that stack. Coroutines keep the frame across every
suspension; generators get it for each resume step only.
"""

from __future__ import annotations

import functools
import inspect
from collections.abc import AsyncGenerator, Callable, Generator
from typing import Any, TypeVar

from scopelog.config import get_settings
from scopelog.context.frames import ContextStack, resolve_frame
from scopelog.context.store import ContextStore, get_store
from scopelog.models.schemas import ScopeDescriptor

C = TypeVar("C", bound=type)
F = TypeVar("F", bound=Callable[..., Any])

DESCRIPTOR_ATTRIBUTE = "__scope_descriptor__"
_WRAPPED_MARKER = "__scopelog_wrapped__"
_UNBOUND = object()

Describe = Callable[[Any], ScopeDescriptor]


def _class_descriptor(owner: Any) -> ScopeDescriptor:
    return getattr(type(owner), DESCRIPTOR_ATTRIBUTE, None) or ScopeDescriptor()


def _is_reentrant(descriptor: ScopeDescriptor) -> bool:
    if descriptor.reentrant is not None:
        return descriptor.reentrant
    return get_settings().reentrant_frames


def enter_stack(store: ContextStore, owner: Any, descriptor: ScopeDescriptor) -> ContextStack:
    """Stack to run a call on ``owner`` under."""
    stack = store.current()
    if stack and not _is_reentrant(descriptor) and stack[-1].owner == id(owner):
        # Already inside this instance's frame.
        return stack
    return store.push(resolve_frame(owner, descriptor))


def _drive_generator(store: ContextStore, stack: ContextStack, gen: Generator[Any, Any, Any]) -> Generator[Any, Any, Any]:
    send_value: Any = None
    error: BaseException | None = None
    while True:
        try:
            if error is not None:
                exc, error = error, None
                item = store.with_stack(stack, gen.throw, exc)
            else:
                item = store.with_stack(stack, gen.send, send_value)
        except StopIteration as stop:
            return stop.value
        try:
            send_value = yield item
        except GeneratorExit:
            store.with_stack(stack, gen.close)
            raise
        except BaseException as exc:
            error = exc
            send_value = None


async def _drive_async_generator(
    store: ContextStore, stack: ContextStack, agen: AsyncGenerator[Any, Any]
) -> AsyncGenerator[Any, Any]:
    send_value: Any = None
    error: BaseException | None = None
    while True:
        try:
            if error is not None:
                exc, error = error, None
                item = await store.with_stack_async(stack, agen.athrow, exc)
            else:
                item = await store.with_stack_async(stack, agen.asend, send_value)
        except StopAsyncIteration:
            return
        try:
            send_value = yield item
        except GeneratorExit:
            await store.with_stack_async(stack, agen.aclose)
            raise
        except BaseException as exc:
            error = exc
            send_value = None


def wrap_callable(fn: Callable[..., Any], describe: Describe, target: Any = _UNBOUND) -> Callable[..., Any]:
    """
    Wrap ``fn`` so each call runs inside a frame for its owner.

    With ``target`` left unbound, ``fn`` is a plain function used as a method
    and the owner is its first positional argument. Otherwise ``fn`` is already
    bound and ``target`` is the owner.
    """

    def owner_of(args: tuple[Any, ...]) -> Any:
        return args[0] if target is _UNBOUND else target

    if inspect.isasyncgenfunction(fn):

        @functools.wraps(fn)
        def agen_wrapper(*args: Any, **kwargs: Any) -> AsyncGenerator[Any, Any]:
            store = get_store()
            owner = owner_of(args)
            stack = enter_stack(store, owner, describe(owner))
            return _drive_async_generator(store, stack, fn(*args, **kwargs))

        wrapper: Callable[..., Any] = agen_wrapper

    elif inspect.isgeneratorfunction(fn):

        @functools.wraps(fn)
        def gen_wrapper(*args: Any, **kwargs: Any) -> Generator[Any, Any, Any]:
            store = get_store()
            owner = owner_of(args)
            stack = enter_stack(store, owner, describe(owner))
            return _drive_generator(store, stack, fn(*args, **kwargs))

        wrapper = gen_wrapper

    elif inspect.iscoroutinefunction(fn):

        @functools.wraps(fn)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            store = get_store()
            owner = owner_of(args)
            stack = enter_stack(store, owner, describe(owner))
            return await store.with_stack_async(stack, fn, *args, **kwargs)

        wrapper = async_wrapper

    else:

        @functools.wraps(fn)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            store = get_store()
            owner = owner_of(args)
            stack = enter_stack(store, owner, describe(owner))
            return store.with_stack(stack, fn, *args, **kwargs)

        wrapper = sync_wrapper

    setattr(wrapper, _WRAPPED_MARKER, True)
    return wrapper


def is_instrumented(fn: Any) -> bool:
    return bool(getattr(fn, _WRAPPED_MARKER, False))


def _instrumentable_members(cls: type) -> dict[str, Callable[..., Any]]:
    """Public plain functions defined on ``cls`` or inherited from its bases."""
    members: dict[str, Callable[..., Any]] = {}
    for klass in reversed(cls.__mro__[:-1]):
        for name, value in vars(klass).items():
            if name.startswith("_"):
                continue
            if inspect.isfunction(value):
                members[name] = value
            else:
                # staticmethod/classmethod/property or a plain attribute shadows a base method.
                members.pop(name, None)
    return members


def _make_descriptor(
    descriptor: ScopeDescriptor | None,
    label: str | None,
    data: dict[str, Any] | None,
    reentrant: bool | None,
) -> ScopeDescriptor:
    base = descriptor or ScopeDescriptor()
    if data is not None and not isinstance(data, dict):
        raise TypeError(f"scope data must be a dict, got {type(data).__name__}")
    result = base.with_overrides(label=label, data=data)
    if reentrant is not None:
        result = result.model_copy(update={"reentrant": reentrant})
    return result


def scope(
    cls: C | None = None,
    *,
    label: str | None = None,
    data: dict[str, Any] | None = None,
    reentrant: bool | None = None,
    descriptor: ScopeDescriptor | None = None,
) -> Any:
    """
    Class decorator: every public method call on an instance pushes a frame.

    Usable bare (``@scope``) or with options (``@scope(label="Billing")``).
    The descriptor is looked up on the instance's class at call time, so a
    decorated subclass gets its own label/data for inherited methods.
    """
    resolved = _make_descriptor(descriptor, label, data, reentrant)

    def decorate(klass: C) -> C:
        if not isinstance(klass, type):
            raise TypeError(f"@scope can only decorate classes, got {type(klass).__name__}")

        setattr(klass, DESCRIPTOR_ATTRIBUTE, resolved)
        for name, fn in _instrumentable_members(klass).items():
            if is_instrumented(fn):
                continue
            setattr(klass, name, wrap_callable(fn, _class_descriptor))

        return klass

    if cls is not None:
        return decorate(cls)
    return decorate


def scoped_method(
    fn: F | None = None,
    *,
    label: str | None = None,
    data: dict[str, Any] | None = None,
) -> Any:
    """
    Wrap a single method. Options are layered over the class descriptor
    (if the class is decorated with ``@scope``) at call time.
    """
    if data is not None and not isinstance(data, dict):
        raise TypeError(f"scope data must be a dict, got {type(data).__name__}")

    def describe(owner: Any) -> ScopeDescriptor:
        return _class_descriptor(owner).with_overrides(label=label, data=data)

    def decorate(method: F) -> F:
        if not callable(method):
            raise TypeError(f"@scoped_method expects a function, got {type(method).__name__}")
        return wrap_callable(method, describe)  # type: ignore[return-value]

    if fn is not None:
        return decorate(fn)
    return decorate


def _strip_instrumentation(value: Any, target: Any) -> Any:
    """Undo a class-level scope wrapper so a proxy's own descriptor applies."""
    func = getattr(value, "__func__", None)
    if func is not None and is_instrumented(func):
        return func.__wrapped__.__get__(target, type(target))
    if is_instrumented(value):
        return value.__wrapped__
    return value


def _proxied_attribute(proxy: ScopedProxy, name: str) -> Any:
    target = object.__getattribute__(proxy, "_scope_target")
    value = getattr(target, name)
    if isinstance(value, type) or not callable(value):
        return value
    descriptor = object.__getattribute__(proxy, "_scope_descriptor")
    return wrap_callable(_strip_instrumentation(value, target), lambda _owner: descriptor, target=target)


def _special_method(proxy: ScopedProxy, name: str) -> Any:
    target = object.__getattribute__(proxy, "_scope_target")
    if getattr(type(target), name, None) is None:
        raise TypeError(f"{type(target).__name__!r} object does not support {name}")
    return _proxied_attribute(proxy, name)


class ScopedProxy:
    """
    Composition wrapper around one scope instance.

    Callables fetched through the proxy are wrapped; other attributes are
    read and written straight through. ``proxy(...)``, iteration and
    (async) context management go through the target's dunder methods and
    are wrapped the same way. Calls the instance makes on ``self`` inside its
    own methods bypass the proxy.
    """

    __slots__ = ("_scope_target", "_scope_descriptor")

    def __init__(self, target: Any, descriptor: ScopeDescriptor) -> None:
        object.__setattr__(self, "_scope_target", target)
        object.__setattr__(self, "_scope_descriptor", descriptor)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__"):
            return getattr(object.__getattribute__(self, "_scope_target"), name)
        return _proxied_attribute(self, name)

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(object.__getattribute__(self, "_scope_target"), name, value)

    def __delattr__(self, name: str) -> None:
        delattr(object.__getattribute__(self, "_scope_target"), name)

    def __dir__(self) -> list[str]:
        return dir(object.__getattribute__(self, "_scope_target"))

    def __repr__(self) -> str:
        return f"ScopedProxy({object.__getattribute__(self, '_scope_target')!r})"

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return _special_method(self, "__call__")(*args, **kwargs)

    def __iter__(self) -> Any:
        return _special_method(self, "__iter__")()

    def __aiter__(self) -> Any:
        return _special_method(self, "__aiter__")()

    def __enter__(self) -> Any:
        return _special_method(self, "__enter__")()

    def __exit__(self, *exc_info: Any) -> Any:
        return _special_method(self, "__exit__")(*exc_info)

    def __aenter__(self) -> Any:
        return _special_method(self, "__aenter__")()

    def __aexit__(self, *exc_info: Any) -> Any:
        return _special_method(self, "__aexit__")(*exc_info)


def unwrap(obj: Any) -> Any:
    if isinstance(obj, ScopedProxy):
        return object.__getattribute__(obj, "_scope_target")
    return obj


def instrument(
    obj: Any,
    descriptor: ScopeDescriptor | None = None,
    *,
    label: str | None = None,
    data: dict[str, Any] | None = None,
    reentrant: bool | None = None,
) -> Any:
    """
    Instrument a class in place (like ``@scope``) or wrap an instance in a ``ScopedProxy``.

    For an instance of an ``@scope`` class, the proxy's options are layered
    over the class descriptor and replace its frame rather than adding one.
    """
    if obj is None:
        raise TypeError("cannot instrument None")
    if isinstance(obj, type):
        return scope(obj, label=label, data=data, reentrant=reentrant, descriptor=descriptor)
    if isinstance(obj, ScopedProxy):
        obj = unwrap(obj)
    base = descriptor if descriptor is not None else _class_descriptor(obj)
    return ScopedProxy(obj, _make_descriptor(base, label, data, reentrant))
