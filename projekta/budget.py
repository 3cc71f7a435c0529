"""
projekta/budget.py

Budget v1 setup: total budget + per-category allocations.

Saving the setup replaces every category budget of the project. Custom
categories typed in the setup form are created first; the form refers to
them by a temporary key (e.g. "custom_1") which is mapped to the new id.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List

from .errors import ValidationError
from .models import BudgetSettings, Category, CategoryBudget, Project
from .repository import LedgerRepository
from .utils import clean_str, money, parse_decimal, parse_optional_int, positive_money

logger = logging.getLogger(__name__)


def allocation_summary(total_budget, allocations: Iterable) -> Dict[str, Decimal]:
    allocated = sum((money(a) for a in allocations if a is not None), Decimal("0.00"))
    total = money(total_budget)
    return {"total_budget": total, "allocated": allocated, "remaining": total - allocated}


def setup_budget(
    repository: LedgerRepository,
    project: Project,
    total_budget,
    allocations: Dict[str, Any],
    custom_categories: List[Dict[str, Any]] | None = None,
) -> Dict[str, Any]:
    """
    Save the budget setup of a project.

    allocations maps category id (or a custom category key) to an amount;
    amounts <= 0 are skipped.
    """
    total = positive_money(total_budget)
    if total is None:
        raise ValidationError("Total budget must be greater than zero.", {"total_budget": "must be positive"})

    for custom in custom_categories or []:
        if not isinstance(custom, dict):
            raise ValidationError("Custom categories need a key and a name.", {"custom_categories": "invalid"})

    parsed: Dict[str, Decimal] = {}
    for key, raw in (allocations or {}).items():
        amount = parse_decimal(raw)
        if amount is None:
            if clean_str(raw) is None:
                continue
            raise ValidationError("Invalid allocation amount.", {str(key): "invalid amount"})
        parsed[str(key)] = money(amount)

    settings = repository.budget_settings(project.id)
    if settings is None:
        settings = repository.add(BudgetSettings(project_id=project.id))
    settings.total_budget = total
    settings.setup_completed = True

    project.contract_value = total

    repository.delete_category_budgets(project.id)
    repository.flush()

    custom_mapping: Dict[str, int] = {}
    for custom in custom_categories or []:
        key = clean_str(custom.get("key"))
        name = clean_str(custom.get("name"))
        if not key or not name:
            raise ValidationError("Custom categories need a key and a name.", {"custom_categories": "invalid"})
        category = repository.project_category_named(project.id, name)
        if category is None:
            category = repository.add(
                Category(
                    name=name,
                    type=Category.TYPE_EXPENSE,
                    icon=clean_str(custom.get("icon")) or "📦",
                    color=clean_str(custom.get("color")) or "#6366F1",
                    project_id=project.id,
                )
            )
            repository.flush()
        custom_mapping[key] = category.id

    created: List[CategoryBudget] = []
    for key, amount in parsed.items():
        if amount <= 0:
            continue
        if key in custom_mapping:
            category_id = custom_mapping[key]
        else:
            category_id = parse_optional_int(key)
            category = repository.get_category(category_id)
            if not category or not category.is_visible_to(project.id):
                raise ValidationError("Invalid category in allocations.", {key: "unknown category"})
        created.append(
            repository.add(CategoryBudget(project_id=project.id, category_id=category_id, budgeted_amount=amount))
        )

    repository.flush()
    logger.info("Budget setup saved for project %s: %s categories", project.id, len(created))

    summary = allocation_summary(total, (amount for amount in parsed.values() if amount > 0))
    summary["categories"] = len(created)
    summary["custom_categories"] = custom_mapping
    return summary
