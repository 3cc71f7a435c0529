"""
projekta/rollup.py

Budget rollup (budget v1 page + dashboard).

Per category budget row:
    spent      = paid expense-type ledger entries
    committed  = open purchase orders (total - paid, 0 once paid)
    available  = budgeted - spent - committed   (may go negative)
    percentage_spent / percentage_committed against budgeted (0 when budgeted is 0)
    percentage_used = percentage_spent + percentage_committed

Totals are sums of the rows; total percentages are recomputed from the
summed totals rather than averaged. Nothing is cached: each call re-reads
the ledger and the purchase orders.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List

from .ledger import EXPENSE_TYPES
from .repository import LedgerRepository
from .status import NEAR_LIMIT, OVER_BUDGET, budget_status_display, classify_budget
from .utils import money, percent_of

ZERO = Decimal("0.00")


def build_row(budgeted, spent, committed) -> Dict[str, Any]:
    """Numbers and status of one rollup row."""
    budgeted = money(budgeted)
    spent = money(spent)
    committed = money(committed)

    percentage_spent = percent_of(spent, budgeted)
    percentage_committed = percent_of(committed, budgeted)
    percentage_used = percentage_spent + percentage_committed

    status = classify_budget(percentage_used, budgeted, spent + committed)

    return {
        "budgeted_amount": budgeted,
        "spent_amount": spent,
        "committed_amount": committed,
        "available_amount": budgeted - spent - committed,
        "percentage_spent": percentage_spent,
        "percentage_committed": percentage_committed,
        "percentage_used": percentage_used,
        "status": status,
        "status_display": budget_status_display(status),
    }


def committed_by_category(orders) -> Dict[int, Decimal]:
    totals: Dict[int, Decimal] = {}
    for po in orders:
        committed = po.committed_amount
        if committed:
            totals[po.category_id] = totals.get(po.category_id, ZERO) + committed
    return totals


def summarize_rows(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    total_budgeted = sum((r["budgeted_amount"] for r in rows), ZERO)
    total_spent = sum((r["spent_amount"] for r in rows), ZERO)
    total_committed = sum((r["committed_amount"] for r in rows), ZERO)
    total_available = sum((r["available_amount"] for r in rows), ZERO)

    over = sum(1 for r in rows if r["status"] == OVER_BUDGET)
    near = sum(1 for r in rows if r["status"] == NEAR_LIMIT)

    percentage_spent = percent_of(total_spent, total_budgeted)
    percentage_committed = percent_of(total_committed, total_budgeted)

    return {
        "total_budgeted": total_budgeted,
        "total_spent": total_spent,
        "total_committed": total_committed,
        "total_available": total_available,
        "percentage_spent": percentage_spent,
        "percentage_committed": percentage_committed,
        "percentage_used": percentage_spent + percentage_committed,
        "categories_over_budget": over,
        "categories_near_limit": near,
        "categories_at_risk": over + near,
    }


class BudgetRollup:
    def __init__(self, repository: LedgerRepository):
        self.repository = repository

    def compute(self, project_id: int, category_id: int | None = None, recent_transactions: int = 0) -> Dict[str, Any]:
        budgets = self.repository.category_budgets(project_id, category_id=category_id)
        spent = self.repository.paid_totals_by_category(project_id, EXPENSE_TYPES)
        committed = committed_by_category(self.repository.purchase_orders(project_id, category_id=category_id))

        rows: List[Dict[str, Any]] = []
        for budget in budgets:
            row = build_row(
                budget.budgeted_amount,
                spent.get(budget.category_id, ZERO),
                committed.get(budget.category_id, ZERO),
            )
            category = budget.category
            row.update(
                {
                    "id": budget.id,
                    "project_id": project_id,
                    "category_id": budget.category_id,
                    "category_name": category.name if category else "",
                    "category_icon": (category.icon if category else None) or "📦",
                    "category_color": (category.color if category else None) or "#6366F1",
                }
            )
            if recent_transactions:
                row["transactions"] = [
                    entry.to_dict()
                    for entry in self.repository.cash_flow_entries(
                        project_id,
                        types=EXPENSE_TYPES,
                        category_id=budget.category_id,
                        limit=recent_transactions,
                    )
                ]
            rows.append(row)

        return {"categories": rows, "summary": summarize_rows(rows)}
