"""
projekta/repository.py

Data access used by the budget services.

The services never touch db.session directly: routes build a
LedgerRepository around the request session and pass it in, so the budget
logic runs the same against any session (tests use an in-memory SQLite one).

Transaction boundaries stay with the caller: this class adds/deletes/flushes
but never commits.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from .models import (
    BudgetSettings,
    CashFlowEntry,
    Category,
    CategoryBudget,
    ContractItem,
    PurchaseOrder,
)
from .utils import money


class LedgerRepository:
    def __init__(self, session: Session):
        self.session = session

    # -----------------------------------------------------------------
    # Unit of work
    # -----------------------------------------------------------------
    def add(self, instance):
        self.session.add(instance)
        return instance

    def delete(self, instance):
        self.session.delete(instance)

    def flush(self):
        self.session.flush()

    # -----------------------------------------------------------------
    # Categories & budgets
    # -----------------------------------------------------------------
    def get_category(self, category_id: int | None) -> Optional[Category]:
        if category_id is None:
            return None
        return self.session.get(Category, category_id)

    def categories_for_project(self, project_id: int, category_type: str | None = None) -> List[Category]:
        q = self.session.query(Category).filter(
            (Category.project_id.is_(None)) | (Category.project_id == project_id)
        )
        if category_type:
            q = q.filter(Category.type == category_type)
        return q.order_by(Category.project_id.isnot(None), Category.name.asc()).all()

    def project_category_named(self, project_id: int, name: str) -> Optional[Category]:
        return self.session.query(Category).filter_by(project_id=project_id, name=name).first()

    def budget_settings(self, project_id: int) -> Optional[BudgetSettings]:
        return self.session.query(BudgetSettings).filter_by(project_id=project_id).first()

    def category_budgets(self, project_id: int, category_id: int | None = None) -> List[CategoryBudget]:
        q = (
            self.session.query(CategoryBudget)
            .options(joinedload(CategoryBudget.category))
            .filter(CategoryBudget.project_id == project_id)
        )
        if category_id is not None:
            q = q.filter(CategoryBudget.category_id == category_id)
        return q.order_by(CategoryBudget.budgeted_amount.desc(), CategoryBudget.id.asc()).all()

    def delete_category_budgets(self, project_id: int) -> int:
        budgets = self.session.query(CategoryBudget).filter_by(project_id=project_id).all()
        for budget in budgets:
            self.session.delete(budget)
        return len(budgets)

    def contract_items(self, project_id: int) -> List[ContractItem]:
        return (
            self.session.query(ContractItem)
            .options(joinedload(ContractItem.category))
            .filter(ContractItem.project_id == project_id)
            .order_by(ContractItem.created_at.desc(), ContractItem.id.desc())
            .all()
        )

    def contract_item_for(self, project_id: int, category_id: int) -> Optional[ContractItem]:
        return (
            self.session.query(ContractItem)
            .filter_by(project_id=project_id, category_id=category_id)
            .first()
        )

    # -----------------------------------------------------------------
    # Ledger
    # -----------------------------------------------------------------
    def paid_totals_by_category(self, project_id: int, types: Iterable[str]) -> Dict[Optional[int], Decimal]:
        """Sum of paid entries of the given types, grouped by category (None = uncategorized)."""
        rows = (
            self.session.query(CashFlowEntry.category_id, func.coalesce(func.sum(CashFlowEntry.amount), 0))
            .filter(
                CashFlowEntry.project_id == project_id,
                CashFlowEntry.type.in_(list(types)),
                CashFlowEntry.status == "paid",
            )
            .group_by(CashFlowEntry.category_id)
            .all()
        )
        return {category_id: money(total) for category_id, total in rows}

    def cash_flow_entries(
        self,
        project_id: int,
        *,
        types: Iterable[str] | None = None,
        status: str | None = None,
        category_id: int | None = None,
        limit: int | None = None,
    ) -> List[CashFlowEntry]:
        q = (
            self.session.query(CashFlowEntry)
            .options(joinedload(CashFlowEntry.category))
            .filter(CashFlowEntry.project_id == project_id)
        )
        if types is not None:
            q = q.filter(CashFlowEntry.type.in_(list(types)))
        if status:
            q = q.filter(CashFlowEntry.status == status)
        if category_id is not None:
            q = q.filter(CashFlowEntry.category_id == category_id)
        q = q.order_by(CashFlowEntry.date.desc(), CashFlowEntry.id.desc())
        if limit:
            q = q.limit(limit)
        return q.all()

    def uncategorized_entries(self, project_id: int) -> List[CashFlowEntry]:
        return (
            self.session.query(CashFlowEntry)
            .filter(CashFlowEntry.project_id == project_id, CashFlowEntry.category_id.is_(None))
            .all()
        )

    def generated_entries(self, purchase_order: PurchaseOrder) -> List[CashFlowEntry]:
        return (
            self.session.query(CashFlowEntry)
            .filter(CashFlowEntry.source_purchase_order_id == purchase_order.id)
            .all()
        )

    # -----------------------------------------------------------------
    # Purchase orders
    # -----------------------------------------------------------------
    def purchase_orders(
        self,
        project_id: int,
        category_id: int | None = None,
        payment_status: str | None = None,
    ) -> List[PurchaseOrder]:
        q = (
            self.session.query(PurchaseOrder)
            .options(joinedload(PurchaseOrder.category))
            .filter(PurchaseOrder.project_id == project_id)
        )
        if category_id is not None:
            q = q.filter(PurchaseOrder.category_id == category_id)
        if payment_status:
            q = q.filter(PurchaseOrder.payment_status == payment_status)
        return q.order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.id.desc()).all()
