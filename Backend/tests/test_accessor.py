"""Tests for the SQL record accessor's query support."""

from datetime import date, datetime

import pytest

from expense_insights.db.accessor import ClaimQuery


@pytest.fixture
def claims(seed):
    ana = seed.employee("Ana Dlamini", department="Operations")
    ben = seed.employee("Ben Smit", department="Finance")
    return {
        "a1": seed.claim(ana, "Travel", 100, expense_date=date(2024, 1, 5)),
        "a2": seed.claim(ana, "Meals", 250, expense_date=date(2024, 2, 5)),
        "b1": seed.claim(ben, "Travel", 900, expense_date=date(2024, 3, 5), status="approved"),
    }


def ids(rows):
    return [r.id for r in rows]


class TestListClaims:
    def test_equality_range_and_exclusion(self, accessor, claims):
        rows = accessor.list_claims(ClaimQuery(
            equals={"category": "Travel"},
            ranges={"amount": (50, None)},
            exclude_id=claims["a1"].id,
        ))
        assert ids(rows) == [claims["b1"].id]

    def test_any_of_with_ordering_and_limit(self, accessor, claims):
        rows = accessor.list_claims(ClaimQuery(
            any_of={"employee_id": [claims["a1"].employee_id, claims["b1"].employee_id]},
            order_by="expense_date",
            descending=True,
            limit=2,
        ))
        assert ids(rows) == [claims["b1"].id, claims["a2"].id]

    def test_alternatives_are_or_ed(self, accessor, claims):
        rows = accessor.list_claims(ClaimQuery(
            alternatives=[
                ClaimQuery(equals={"category": "Meals"}),
                ClaimQuery(equals={"status": "approved"}),
            ],
            order_by="amount",
        ))
        assert ids(rows) == [claims["a2"].id, claims["b1"].id]

    def test_date_range(self, accessor, claims):
        rows = accessor.list_claims(ClaimQuery(ranges={"expense_date": (date(2024, 2, 1), date(2024, 2, 28))}))
        assert ids(rows) == [claims["a2"].id]

    def test_unknown_field_is_rejected(self, accessor):
        with pytest.raises(ValueError):
            accessor.list_claims(ClaimQuery(equals={"vendor": "Uber"}))

    def test_rows_convert_to_claims(self, accessor, claims):
        claim = accessor.get_claim(claims["b1"].id)
        assert claim.status == "approved"
        assert claim.amount == 900
        assert claim.department == "Finance"

    def test_unrecognised_status_does_not_sink_the_query(self, seed, accessor, claims):
        ana = accessor.get_employee(claims["a1"].employee_id)
        odd = seed.claim(ana, "Travel", 120, status="escalated")
        rows = accessor.list_claims(ClaimQuery(equals={"employee_id": ana.id}, order_by="amount"))
        assert ids(rows) == [claims["a1"].id, odd.id, claims["a2"].id]
        assert rows[1].status == "escalated"

    def test_unrecognised_approval_action_is_returned(self, seed, accessor, claims):
        seed.approval(claims["b1"], None, "escalate", datetime(2024, 3, 6, 9, 0))
        events = accessor.list_approval_events(claims["b1"].id)
        assert [e.action for e in events] == ["escalate"]
        assert events[0].actor_name is None


class TestDirectoryQueries:
    def test_departments_and_employees(self, accessor, claims):
        assert accessor.list_departments() == ["Finance", "Operations"]
        assert [e.name for e in accessor.list_employees("Operations")] == ["Ana Dlamini"]
        assert len(accessor.list_employees()) == 2

    def test_budget_lookup(self, seed, accessor):
        seed.budget("Finance", 7500)
        assert accessor.get_department_budget("Finance") == 7500
        assert accessor.get_department_budget("Operations") is None

    def test_departments_include_budgets_and_claim_tags(self, seed, accessor, claims):
        seed.budget("Research", 5000)
        ana = accessor.get_employee(claims["a1"].employee_id)
        seed.claim(ana, "Meals", 40, department="Ops")
        assert accessor.list_departments() == ["Finance", "Operations", "Ops", "Research"]
