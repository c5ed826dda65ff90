"""Small predicate algebra for price filters.

Filters are built as plain data (``Eq``, ``Ne``, ``Range``, ``Contains``,
``And``, ``Or`` and the ``NEVER`` sentinel) so the same filter can be rendered
to a SQLAlchemy clause for the database and evaluated directly against
in-memory records in tests.

Evaluation follows SQL NULL semantics: a comparison against a NULL column is
false, and only ``Eq(field, None)`` matches NULL.
"""
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from sqlalchemy import and_ as sa_and, false, or_ as sa_or, true


@dataclass(frozen=True)
class Eq:
    field: str
    value: Any


@dataclass(frozen=True)
class Ne:
    field: str
    value: Any


@dataclass(frozen=True)
class Range:
    field: str
    gte: Any = None
    lte: Any = None


@dataclass(frozen=True)
class Contains:
    """Membership of ``value`` in a collection-valued field."""

    field: str
    value: Any


@dataclass(frozen=True)
class And:
    items: tuple = ()


@dataclass(frozen=True)
class Or:
    items: tuple = ()


@dataclass(frozen=True)
class Never:
    pass


NEVER = Never()
ALWAYS = And(())

Predicate = Union[Eq, Ne, Range, Contains, And, Or, Never]


def and_(*predicates: Optional[Predicate]) -> Predicate:
    items = []
    for pred in predicates:
        if pred is None:
            continue
        if isinstance(pred, Never):
            return NEVER
        if isinstance(pred, And):
            items.extend(pred.items)
        else:
            items.append(pred)
    if len(items) == 1:
        return items[0]
    return And(tuple(items))


def or_(*predicates: Optional[Predicate]) -> Predicate:
    items = [pred for pred in predicates if pred is not None and not isinstance(pred, Never)]
    if not items:
        return NEVER
    if len(items) == 1:
        return items[0]
    return Or(tuple(items))


def is_never(pred: Predicate) -> bool:
    return isinstance(pred, Never)


def evaluate(pred: Predicate, record: Any) -> bool:
    if isinstance(pred, Never):
        return False
    if isinstance(pred, And):
        return all(evaluate(item, record) for item in pred.items)
    if isinstance(pred, Or):
        return any(evaluate(item, record) for item in pred.items)

    current = getattr(record, pred.field, None)
    if isinstance(pred, Eq):
        if pred.value is None:
            return current is None
        return current is not None and current == pred.value
    if isinstance(pred, Ne):
        return current is not None and current != pred.value
    if isinstance(pred, Range):
        if current is None:
            return False
        if pred.gte is not None and current < pred.gte:
            return False
        if pred.lte is not None and current > pred.lte:
            return False
        return True
    if isinstance(pred, Contains):
        return pred.value in (current or ())
    raise TypeError(f"Unsupported predicate: {pred!r}")


def to_sqlalchemy(pred: Predicate, model, collections: Optional[dict[str, Callable[[Any], Any]]] = None):
    """Render ``pred`` as a SQLAlchemy clause against ``model``.

    ``collections`` maps collection-valued field names to a factory producing
    the membership clause, since those live in a related table.
    """
    collections = collections or {}

    if isinstance(pred, Never):
        return false()
    if isinstance(pred, And):
        if not pred.items:
            return true()
        return sa_and(*(to_sqlalchemy(item, model, collections) for item in pred.items))
    if isinstance(pred, Or):
        if not pred.items:
            return false()
        return sa_or(*(to_sqlalchemy(item, model, collections) for item in pred.items))
    if isinstance(pred, Contains):
        try:
            return collections[pred.field](pred.value)
        except KeyError:
            raise ValueError(f"No membership clause registered for {pred.field!r}") from None

    column = getattr(model, pred.field)
    if isinstance(pred, Eq):
        return column.is_(None) if pred.value is None else column == pred.value
    if isinstance(pred, Ne):
        return column != pred.value
    if isinstance(pred, Range):
        clauses = []
        if pred.gte is not None:
            clauses.append(column >= pred.gte)
        if pred.lte is not None:
            clauses.append(column <= pred.lte)
        if not clauses:
            return column.is_not(None)
        return sa_and(*clauses)
    raise TypeError(f"Unsupported predicate: {pred!r}")
