from datetime import date
from types import SimpleNamespace

from sqlalchemy.dialects import postgresql

from app.models import Price
from app.services.predicates import (
    ALWAYS,
    NEVER,
    And,
    Contains,
    Eq,
    Ne,
    Or,
    Range,
    and_,
    evaluate,
    or_,
    to_sqlalchemy,
)
from app.services.price_store import PRICE_COLLECTIONS


def _sql(pred) -> str:
    clause = to_sqlalchemy(pred, Price, PRICE_COLLECTIONS)
    return str(clause.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}))


def test_and_flattens_and_drops_none():
    pred = and_(Eq("a", 1), None, and_(Eq("b", 2), Eq("c", 3)))
    assert pred == And((Eq("a", 1), Eq("b", 2), Eq("c", 3)))
    assert and_(Eq("a", 1)) == Eq("a", 1)
    assert and_() == ALWAYS


def test_never_absorbs_and_vanishes_in_or():
    assert and_(Eq("a", 1), NEVER) is NEVER
    assert or_(NEVER, Eq("a", 1)) == Eq("a", 1)
    assert or_(None, NEVER) is NEVER


def test_evaluate_uses_sql_null_semantics():
    row = SimpleNamespace(a=None, b=5, orgs=[1, 2])
    assert evaluate(Eq("a", None), row)
    assert not evaluate(Eq("a", 5), row)
    assert not evaluate(Range("a", gte=0), row)
    assert not evaluate(Ne("a", 1), row)
    assert evaluate(Ne("b", 1), row)
    assert evaluate(Range("b", gte=5, lte=5), row)
    assert evaluate(Contains("orgs", 2), row)
    assert not evaluate(Contains("orgs", 3), row)
    assert evaluate(Or((Eq("a", 1), Eq("b", 5))), row)
    assert evaluate(ALWAYS, row)
    assert not evaluate(NEVER, row)


def test_renders_null_checks_and_ranges():
    sql = _sql(and_(Eq("origin_region_id", None), Range("effective_date", gte=date(2025, 1, 1), lte=None)))
    assert "prices.origin_region_id IS NULL" in sql
    assert "prices.effective_date >=" in sql
    assert "2025-01-01" in sql


def test_renders_membership_through_join_table():
    sql = _sql(Contains("visible_org_ids", 10))
    assert "EXISTS" in sql
    assert "price_visible_orgs.organization_id = 10" in sql


def test_renders_never_as_false():
    assert _sql(NEVER) == "false"
