from decimal import Decimal

import pytest

from projekta.budget import allocation_summary, setup_budget
from projekta.errors import ValidationError


def test_allocation_summary():
    summary = allocation_summary("1000", ["250", "300.50", None])

    assert summary["allocated"] == Decimal("550.50")
    assert summary["remaining"] == Decimal("449.50")


def test_setup_creates_settings_and_allocations(repository, project, seed):
    summary = setup_budget(
        repository,
        project,
        "20000",
        {str(seed.electrical_id): "8000", str(seed.plumbing_id): "0"},
    )

    settings = repository.budget_settings(seed.project_id)
    assert settings.setup_completed is True
    assert settings.total_budget == Decimal("20000.00")
    assert project.contract_value == Decimal("20000.00")

    budgets = repository.category_budgets(seed.project_id)
    assert [(b.category_id, b.budgeted_amount) for b in budgets] == [(seed.electrical_id, Decimal("8000.00"))]
    assert summary["categories"] == 1
    assert summary["remaining"] == Decimal("12000.00")


def test_setup_replaces_previous_allocations(repository, project, seed):
    setup_budget(repository, project, "20000", {str(seed.electrical_id): "8000"})
    setup_budget(repository, project, "30000", {str(seed.plumbing_id): "5000"})

    budgets = repository.category_budgets(seed.project_id)
    assert [b.category_id for b in budgets] == [seed.plumbing_id]
    assert repository.budget_settings(seed.project_id).total_budget == Decimal("30000.00")


def test_custom_categories_are_created_and_mapped(repository, project, seed):
    summary = setup_budget(
        repository,
        project,
        "10000",
        {"custom_1": "2500"},
        custom_categories=[{"key": "custom_1", "name": "Landscaping"}],
    )

    category_id = summary["custom_categories"]["custom_1"]
    category = repository.get_category(category_id)
    assert category.name == "Landscaping"
    assert category.project_id == seed.project_id
    assert repository.category_budgets(seed.project_id)[0].category_id == category_id

    again = setup_budget(
        repository,
        project,
        "10000",
        {"custom_1": "2500"},
        custom_categories=[{"key": "custom_1", "name": "Landscaping"}],
    )
    assert again["custom_categories"]["custom_1"] == category_id


def test_total_budget_must_be_positive(repository, project):
    with pytest.raises(ValidationError):
        setup_budget(repository, project, "0", {})


def test_allocation_to_foreign_category_is_rejected(repository, project, seed):
    with pytest.raises(ValidationError):
        setup_budget(repository, project, "1000", {str(seed.foreign_category_id): "100"})


def test_custom_categories_must_be_objects(repository, project):
    with pytest.raises(ValidationError) as excinfo:
        setup_budget(repository, project, "1000", {}, custom_categories=["Landscaping"])

    assert excinfo.value.fields == {"custom_categories": "invalid"}


def test_total_budget_rounding_to_zero_is_rejected(repository, project):
    with pytest.raises(ValidationError):
        setup_budget(repository, project, "0.004", {})
