"""
projekta/financials.py

Financials v2: contract items and profit tracking.

A contract item states what the client's contract allocates to a category.
Against it we track paid expenses, received income and open purchase-order
commitments:

    expected_profit = contract_amount - actual_expenses
    pending_amount  = contract_amount - received_income

Only paid ledger entries count; addition_* types count with their base type.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List

from .errors import DuplicateContractItem, ValidationError
from .ledger import EXPENSE_TYPES, INCOME_TYPES
from .models import ContractItem, Project
from .repository import LedgerRepository
from .rollup import committed_by_category
from .status import budget_status_display, classify_budget
from .utils import (
    clean_str,
    money,
    parse_optional_int,
    percent_of,
    positive_money,
    require_positive_amount,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


class FinancialsService:
    def __init__(self, repository: LedgerRepository):
        self.repository = repository

    # -----------------------------------------------------------------
    # Overview
    # -----------------------------------------------------------------
    def overview(self, project_id: int) -> Dict[str, Any]:
        items = self.repository.contract_items(project_id)
        expenses = self.repository.paid_totals_by_category(project_id, EXPENSE_TYPES)
        income = self.repository.paid_totals_by_category(project_id, INCOME_TYPES)
        committed = committed_by_category(self.repository.purchase_orders(project_id))

        categories: List[Dict[str, Any]] = []
        for item in items:
            contract_amount = money(item.contract_amount)
            actual_expenses = expenses.get(item.category_id, ZERO)
            received_income = income.get(item.category_id, ZERO)
            committed_amount = committed.get(item.category_id, ZERO)

            percentage_used = percent_of(actual_expenses, contract_amount) + percent_of(
                committed_amount, contract_amount
            )
            status = classify_budget(percentage_used, contract_amount, actual_expenses + committed_amount)

            category = item.category
            categories.append(
                {
                    "contract_item_id": item.id,
                    "category_id": item.category_id,
                    "category_name": category.name if category else "",
                    "category_icon": (category.icon if category else None) or "📦",
                    "category_color": (category.color if category else None) or "#6366F1",
                    "description": item.description,
                    "contract_amount": contract_amount,
                    "actual_expenses": actual_expenses,
                    "received_income": received_income,
                    "committed_amount": committed_amount,
                    "expected_profit": contract_amount - actual_expenses,
                    "pending_amount": contract_amount - received_income,
                    "percentage_used": percentage_used,
                    "status": status,
                    "status_display": budget_status_display(status),
                }
            )

        total_contract = sum((c["contract_amount"] for c in categories), ZERO)
        # Project-wide totals cover every paid entry, including categories without a contract item
        total_expenses = sum(expenses.values(), ZERO)
        total_income = sum(income.values(), ZERO)
        total_committed = sum(committed.values(), ZERO)

        totals = {
            "total_contract": total_contract,
            "total_expenses": total_expenses,
            "total_income": total_income,
            "total_committed": total_committed,
            "expected_profit": total_contract - total_expenses,
            "pending_from_client": total_contract - total_income,
            "percentage_complete": percent_of(total_expenses, total_contract),
            "uncategorized_expenses": expenses.get(None, ZERO),
        }

        overflow = self._overflow(project_id, {item.category_id for item in items})
        totals["overflow_total"] = sum((group["total"] for group in overflow), ZERO)
        return {"totals": totals, "categories": categories, "overflow_by_category": overflow}

    def _overflow(self, project_id: int, contract_category_ids) -> List[Dict[str, Any]]:
        """Paid expenses with no category, or in a category without a contract item, grouped by category."""
        groups: Dict[Any, Dict[str, Any]] = {}
        for entry in self.repository.cash_flow_entries(project_id, types=EXPENSE_TYPES, status="paid"):
            if entry.category_id is not None and entry.category_id in contract_category_ids:
                continue
            group = groups.get(entry.category_id)
            if group is None:
                category = entry.category
                group = groups[entry.category_id] = {
                    "category_id": entry.category_id,
                    "category_name": category.name if category else "Uncategorized",
                    "category_icon": (category.icon if category else None) or "❓",
                    "total": ZERO,
                    "count": 0,
                }
            group["total"] += money(entry.amount)
            group["count"] += 1
        return sorted(groups.values(), key=lambda g: g["total"], reverse=True)

    # -----------------------------------------------------------------
    # Contract items
    # -----------------------------------------------------------------
    def _category_id_for(self, project: Project, raw) -> int:
        category_id = parse_optional_int(raw)
        if category_id is None:
            raise ValidationError("Please fill in all required fields.", {"category_id": "required"})
        category = self.repository.get_category(category_id)
        if not category or not category.is_visible_to(project.id):
            raise ValidationError("Invalid category for this project.", {"category_id": "invalid"})
        return category_id

    def add_contract_item(self, project: Project, data: Dict[str, Any]) -> ContractItem:
        category_id = self._category_id_for(project, data.get("category_id"))
        contract_amount = require_positive_amount(data.get("contract_amount"), "contract_amount")

        existing = self.repository.contract_item_for(project.id, category_id)
        if existing is not None:
            raise DuplicateContractItem(existing)

        item = self.repository.add(
            ContractItem(
                project_id=project.id,
                category_id=category_id,
                contract_amount=contract_amount,
                description=clean_str(data.get("description")),
            )
        )
        self.repository.flush()
        return item

    def update_contract_item(self, item: ContractItem, data: Dict[str, Any]) -> ContractItem:
        if "contract_amount" in data:
            item.contract_amount = require_positive_amount(data.get("contract_amount"), "contract_amount")
        if "description" in data:
            item.description = clean_str(data.get("description"))
        self.repository.flush()
        return item

    def delete_contract_item(self, item: ContractItem) -> None:
        self.repository.delete(item)
        self.repository.flush()

    def assign_uncategorized(self, project: Project, raw_category_id) -> int:
        """Move the project's uncategorized ledger entries onto a category."""
        category_id = self._category_id_for(project, raw_category_id)
        entries = self.repository.uncategorized_entries(project.id)
        for entry in entries:
            entry.category_id = category_id
        self.repository.flush()
        return len(entries)

    # -----------------------------------------------------------------
    # Setup wizard
    # -----------------------------------------------------------------
    def setup_contract(self, project: Project, contract_value, items: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Save the initial contract: project value + one contract item per selected category.

        Existing items for a category are updated in place; the whole save is
        flushed in one session so a failure leaves nothing half written.
        """
        value = positive_money(contract_value)
        if value is None:
            raise ValidationError("Contract value must be greater than zero.", {"contract_value": "must be positive"})

        if any(not isinstance(i, dict) for i in items or []):
            raise ValidationError("Contract items must be objects.", {"items": "invalid"})

        selected = [i for i in items or [] if i.get("enabled", True)]
        prepared = []
        errors: Dict[str, str] = {}
        for index, raw in enumerate(selected):
            amount = positive_money(raw.get("amount"))
            if amount is None:
                errors[f"items[{index}].amount"] = "required"
                continue
            prepared.append((self._category_id_for(project, raw.get("category_id")), amount))
        if errors:
            raise ValidationError("Please enter an amount for every selected category.", errors)

        project.contract_value = value

        saved: List[ContractItem] = []
        for category_id, amount in prepared:
            item = self.repository.contract_item_for(project.id, category_id)
            if item is None:
                item = self.repository.add(
                    ContractItem(project_id=project.id, category_id=category_id, contract_amount=amount)
                )
            else:
                item.contract_amount = amount
            saved.append(item)

        self.repository.flush()
        logger.info("Contract setup saved for project %s: %s items", project.id, len(saved))

        allocated = sum((amount for _, amount in prepared), ZERO)
        return {
            "contract_value": value,
            "allocated": allocated,
            "remaining": value - allocated,
            "items": [item.to_dict() for item in saved],
        }
