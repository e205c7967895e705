"""Composable SQL templates with ``?`` placeholders rendered to asyncpg's ``$n`` style."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class ScopedQuery:
    """A statement plus the ``WHERE`` conditions appended to it.

    ``base`` and each condition use ``?`` placeholders; values are kept in the order the
    placeholders appear once rendered (base first, then conditions, then suffix).
    """

    base: str
    base_params: tuple[Any, ...] = ()
    conditions: tuple[str, ...] = ()
    condition_params: tuple[Any, ...] = ()
    suffix: str = ""
    suffix_params: tuple[Any, ...] = ()

    def where(self, condition: str, *values: Any) -> "ScopedQuery":
        if condition.count("?") != len(values):
            raise ValueError(f"Condition {condition!r} expects {condition.count('?')} values, got {len(values)}")
        return ScopedQuery(
            base=self.base,
            base_params=self.base_params,
            conditions=(*self.conditions, condition),
            condition_params=(*self.condition_params, *values),
            suffix=self.suffix,
            suffix_params=self.suffix_params,
        )

    def with_suffix(self, suffix: str, *values: Any) -> "ScopedQuery":
        return ScopedQuery(
            base=self.base,
            base_params=self.base_params,
            conditions=self.conditions,
            condition_params=self.condition_params,
            suffix=suffix,
            suffix_params=tuple(values),
        )

    @property
    def params(self) -> list[Any]:
        return [*self.base_params, *self.condition_params, *self.suffix_params]

    def render(self) -> tuple[str, list[Any]]:
        parts = [self.base.strip()]
        if self.conditions:
            parts.append("WHERE " + " AND ".join(f"({condition})" for condition in self.conditions))
        if self.suffix:
            parts.append(self.suffix.strip())
        return number_placeholders("\n".join(parts)), self.params


def number_placeholders(sql: str) -> str:
    """Replace each ``?`` with ``$1``, ``$2``... in order of appearance."""

    pieces = sql.split("?")
    rendered = [pieces[0]]
    for index, piece in enumerate(pieces[1:], start=1):
        rendered.append(f"${index}")
        rendered.append(piece)
    return "".join(rendered)
