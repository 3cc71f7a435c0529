from decimal import Decimal

from conftest import add_budget, add_entry, add_po

from projekta.rollup import BudgetRollup, build_row
from projekta.status import NEAR_LIMIT, ON_BUDGET, OVER_BUDGET


def _row(rollup, category_id):
    return next(r for r in rollup["categories"] if r["category_id"] == category_id)


def test_spent_and_committed_within_budget(session, repository, seed):
    add_budget(session, seed.project_id, seed.electrical_id, 10000)
    add_entry(session, seed.project_id, seed.electrical_id, 3000)
    add_po(session, seed.project_id, seed.electrical_id, 5000)

    row = _row(BudgetRollup(repository).compute(seed.project_id), seed.electrical_id)

    assert row["spent_amount"] == Decimal("3000.00")
    assert row["committed_amount"] == Decimal("5000.00")
    assert row["available_amount"] == Decimal("2000.00")
    assert row["percentage_used"] == Decimal("80.00")
    assert row["status"] == ON_BUDGET


def test_open_commitment_pushes_category_over_budget(session, repository, seed):
    add_budget(session, seed.project_id, seed.electrical_id, 10000)
    add_entry(session, seed.project_id, seed.electrical_id, 3000)
    add_po(session, seed.project_id, seed.electrical_id, 8000)

    row = _row(BudgetRollup(repository).compute(seed.project_id), seed.electrical_id)

    assert row["committed_amount"] == Decimal("8000.00")
    assert row["available_amount"] == Decimal("-1000.00")
    assert row["percentage_used"] == Decimal("110.00")
    assert row["status"] == OVER_BUDGET


def test_zero_budget_with_spending_is_flagged():
    row = build_row(Decimal("0"), Decimal("500"), Decimal("0"))

    assert row["percentage_used"] == Decimal("0.00")
    assert row["status"] == OVER_BUDGET


def test_only_paid_expense_types_count_as_spent(session, repository, seed):
    add_budget(session, seed.project_id, seed.electrical_id, 1000)
    add_entry(session, seed.project_id, seed.electrical_id, 100)
    add_entry(session, seed.project_id, seed.electrical_id, 200, type="addition_expense")
    add_entry(session, seed.project_id, seed.electrical_id, 400, status="pending")
    add_entry(session, seed.project_id, seed.electrical_id, 800, type="income")

    row = _row(BudgetRollup(repository).compute(seed.project_id), seed.electrical_id)

    assert row["spent_amount"] == Decimal("300.00")


def test_paid_purchase_orders_are_not_committed(session, repository, seed):
    add_budget(session, seed.project_id, seed.electrical_id, 1000)
    add_po(session, seed.project_id, seed.electrical_id, 300, paid=300, payment_status="paid")
    add_po(session, seed.project_id, seed.electrical_id, 500, paid=100)

    row = _row(BudgetRollup(repository).compute(seed.project_id), seed.electrical_id)

    assert row["committed_amount"] == Decimal("400.00")


def test_available_is_budget_minus_spent_minus_committed(session, repository, seed):
    add_budget(session, seed.project_id, seed.electrical_id, 2500)
    add_budget(session, seed.project_id, seed.plumbing_id, 700)
    add_entry(session, seed.project_id, seed.electrical_id, 1234.56)
    add_entry(session, seed.project_id, seed.plumbing_id, 650)
    add_po(session, seed.project_id, seed.plumbing_id, 120)

    rollup = BudgetRollup(repository).compute(seed.project_id)

    for row in rollup["categories"]:
        expected = row["budgeted_amount"] - row["spent_amount"] - row["committed_amount"]
        assert row["available_amount"] == expected


def test_rows_ordered_and_summary_recomputed_from_totals(session, repository, seed):
    add_budget(session, seed.project_id, seed.plumbing_id, 1000)
    add_budget(session, seed.project_id, seed.electrical_id, 3000)
    add_entry(session, seed.project_id, seed.plumbing_id, 900)
    add_entry(session, seed.project_id, seed.electrical_id, 300)

    rollup = BudgetRollup(repository).compute(seed.project_id)
    summary = rollup["summary"]

    assert [r["category_id"] for r in rollup["categories"]] == [seed.electrical_id, seed.plumbing_id]
    assert summary["total_budgeted"] == Decimal("4000.00")
    assert summary["total_spent"] == Decimal("1200.00")
    # 1200 / 4000, not the mean of 10% and 90%
    assert summary["percentage_spent"] == Decimal("30.00")
    assert summary["categories_near_limit"] == 1
    assert summary["categories_over_budget"] == 0
    assert summary["categories_at_risk"] == 1
    assert _row(rollup, seed.plumbing_id)["status"] == NEAR_LIMIT


def test_category_filter_and_recent_transactions(session, repository, seed):
    add_budget(session, seed.project_id, seed.electrical_id, 1000)
    add_budget(session, seed.project_id, seed.plumbing_id, 1000)
    for amount in (10, 20, 30):
        add_entry(session, seed.project_id, seed.electrical_id, amount)

    rollup = BudgetRollup(repository).compute(seed.project_id, category_id=seed.electrical_id, recent_transactions=2)

    assert len(rollup["categories"]) == 1
    assert len(rollup["categories"][0]["transactions"]) == 2


def test_other_projects_do_not_leak(session, repository, seed):
    add_budget(session, seed.project_id, seed.electrical_id, 1000)
    add_entry(session, seed.other_project_id, seed.electrical_id, 999)
    add_po(session, seed.other_project_id, seed.electrical_id, 999)

    row = _row(BudgetRollup(repository).compute(seed.project_id), seed.electrical_id)

    assert row["spent_amount"] == Decimal("0.00")
    assert row["committed_amount"] == Decimal("0.00")
