"""Operation tracing for services.

``@traced`` wraps a service method. Every call binds the operation name
and its allocation subject (whichever of ``uid``, ``actor``, ``domain_id``
and ``domain_name`` it was called with) into structlog's contextvars, so
any log line emitted during the call carries them.

With telemetry enabled (``-v``) the call also records a span tree: one
span per traced call, children from :func:`trace_span` or from nested
traced calls. Each traced span is logged as ``span.complete`` with its
error code; the outermost is attached to ``ServiceResult.meta``. When
disabled the cost is a signature bind and one ContextVar read.
"""

from __future__ import annotations

import functools
import inspect
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from domainpool.services.result import ServiceResult

# Parameter names that identify who and what an operation is about.
SUBJECT_PARAMS = ("uid", "actor", "domain_id", "domain_name")

_enabled: ContextVar[bool] = ContextVar("domainpool_telemetry", default=False)
_active_span: ContextVar[Span | None] = ContextVar("domainpool_span", default=None)


@dataclass
class Span:
    """One timed step of an operation."""

    name: str
    subject: dict[str, Any] = field(default_factory=dict)
    parent: Span | None = field(default=None, repr=False)
    children: list[Span] = field(default_factory=list)
    error_code: str | None = None
    annotations: dict[str, Any] = field(default_factory=dict)
    _started: float = field(default_factory=time.perf_counter, repr=False)
    _elapsed: float | None = field(default=None, repr=False)

    @property
    def duration_ms(self) -> float:
        return 0.0 if self._elapsed is None else self._elapsed * 1000

    def end(self) -> None:
        self._elapsed = time.perf_counter() - self._started

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def child(self, name: str) -> Span:
        span = Span(name=name, parent=self)
        self.children.append(span)
        return span

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        optional = {
            "subject": self.subject,
            "error_code": self.error_code,
            "annotations": self.annotations,
        }
        data.update((key, value) for key, value in optional.items() if value)
        if self.children:
            data["children"] = [c.to_dict() for c in self.children]
        return data


def _subject_binder(func: Callable[..., Any]) -> Callable[..., dict[str, Any]]:
    """Build a function mapping call arguments to the subject parameters *func* takes."""
    signature = inspect.signature(func)
    names = [n for n in SUBJECT_PARAMS if n in signature.parameters]
    if not names:
        return lambda *_args, **_kwargs: {}

    def bind(*args: Any, **kwargs: Any) -> dict[str, Any]:
        try:
            bound = signature.bind_partial(*args, **kwargs)
        except TypeError:
            # Let the real call raise the argument error.
            return {}
        return {n: bound.arguments[n] for n in names if bound.arguments.get(n) is not None}

    return bind


@contextmanager
def _activated(span: Span) -> Iterator[Span]:
    token = _active_span.set(span)
    try:
        yield span
    finally:
        span.end()
        _active_span.reset(token)


@contextmanager
def trace_span(name: str) -> Iterator[Span | None]:
    """Time a step under the running traced call.

    Yields None when telemetry is disabled or no traced call is running.
    """
    parent = _active_span.get() if _enabled.get() else None
    if parent is None:
        yield None
        return
    with _activated(parent.child(name)) as span:
        yield span


def _log_span(span: Span, *, ok: bool) -> None:
    structlog.get_logger("domainpool.telemetry").debug(
        "span.complete",
        span_name=span.name,
        duration_ms=round(span.duration_ms, 2),
        ok=ok,
        error_code=span.error_code,
        children=len(span.children),
        **span.annotations,
    )


def _run_spanned(
    name: str, subject: dict[str, Any], func: Callable[..., Any], args: Any, kwargs: Any
) -> Any:
    parent = _active_span.get()
    span = parent.child(name) if parent is not None else Span(name=name)
    span.subject = subject
    try:
        with _activated(span):
            result = func(*args, **kwargs)
    except Exception as exc:
        span.error_code = type(exc).__name__
        _log_span(span, ok=False)
        raise

    if not isinstance(result, ServiceResult):
        _log_span(span, ok=True)
        return result
    if result.error is not None:
        span.error_code = result.error.code
    _log_span(span, ok=result.ok)
    if parent is not None:
        return result
    meta = {**(result.meta or {}), "telemetry": span.to_dict()}
    return result.model_copy(update={"meta": meta})


_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Decorator: bind the call's subject into log context and time it when enabled."""
    name = func.__qualname__
    subject_of = _subject_binder(func)

    @functools.wraps(func)
    def call(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        subject = subject_of(*args, **kwargs)
        with structlog.contextvars.bound_contextvars(op=name, **subject):
            if not _enabled.get():
                return func(*args, **kwargs)
            return _run_spanned(name, subject, func, args, kwargs)  # type: ignore[no-any-return]

    return call


def enable_telemetry() -> None:
    """Record spans from now on (AppContext calls this for ``-v``)."""
    _enabled.set(True)


def disable_telemetry() -> None:
    _enabled.set(False)


def get_current_span() -> Span | None:
    """The innermost running span, for annotations such as retry counts."""
    return _active_span.get() if _enabled.get() else None
