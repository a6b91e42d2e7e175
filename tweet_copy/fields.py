from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Optional, Tuple, TypeVar, Union

T = TypeVar("T")

Strategy = Tuple[str, Callable[[], Optional[Any]]]


@dataclass(frozen=True)
class Found(Generic[T]):
    """A field value plus the name of the strategy that produced it."""

    value: T
    strategy: str


@dataclass(frozen=True)
class Exhausted:
    """Every strategy for a field ran and none produced an acceptable value."""

    field: str
    tried: tuple[str, ...] = ()


FieldResult = Union[Found[T], Exhausted]


def first_found(
    field: str,
    strategies: Iterable[Strategy],
    *,
    accept: Callable[[Any], bool] | None = None,
) -> Found[Any] | Exhausted:
    """
    Run strategies in order and return the first value that passes `accept`.

    Strategies are (name, thunk) pairs so later ones are never evaluated once an
    earlier one wins. A thunk returning None counts as a miss.
    """
    tried: list[str] = []
    for name, fn in strategies:
        tried.append(name)
        value = fn()
        if value is None:
            continue
        if accept is not None and not accept(value):
            continue
        return Found(value=value, strategy=name)
    return Exhausted(field=field, tried=tuple(tried))
