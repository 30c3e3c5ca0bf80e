# taxbook_core/common/result.py
"""
Two-variant success/failure container.

Fallible domain operations (rule evaluation, state transitions) return
`Ok(value)` or `Err(error)` instead of raising; the API layer decides which
HTTP error a failure becomes.

    res = executor.perform_transition("Appointment", appt_id, "confirm")
    if res.is_err:
        ...
    appointment = res.unwrap()
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")
U = TypeVar("U")
F = TypeVar("F")


class UnwrapError(Exception):
    def __init__(self, error: Any):
        super().__init__(f"unwrap() called on Err: {error!r}")
        self.error = error


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def map(self, fn: Callable[[T], U]) -> "Ok[U]":
        return Ok(fn(self.value))

    def map_err(self, fn: Callable[[Any], F]) -> "Ok[T]":
        return self

    def and_then(self, fn: Callable[[T], "Result[U, E]"]) -> "Result[U, E]":
        return fn(self.value)


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_err(self) -> bool:
        return True

    def unwrap(self):
        raise UnwrapError(self.error)

    def unwrap_or(self, default: T) -> T:
        return default

    def map(self, fn: Callable[[Any], U]) -> "Err[E]":
        return self

    def map_err(self, fn: Callable[[E], F]) -> "Err[F]":
        return Err(fn(self.error))

    def and_then(self, fn: Callable[[Any], "Result[U, E]"]) -> "Err[E]":
        return self


Result = Union[Ok[T], Err[E]]


def ok(value: T = None) -> Ok[T]:
    return Ok(value)


def err(error: E) -> Err[E]:
    return Err(error)


def collect(results) -> "Result[list, Any]":
    """
    First Err wins; otherwise Ok(list of values) in input order.
    """
    values = []
    for r in results:
        if r.is_err:
            return r
        values.append(r.value)
    return Ok(values)
