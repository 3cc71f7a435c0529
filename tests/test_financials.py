from decimal import Decimal

import pytest
from conftest import add_entry, add_po

from projekta.errors import DuplicateContractItem, ValidationError
from projekta.financials import FinancialsService
from projekta.models import CashFlowEntry


@pytest.fixture
def service(repository):
    return FinancialsService(repository)


def test_overview_profit_and_pending(service, session, project, seed):
    service.add_contract_item(project, {"category_id": seed.electrical_id, "contract_amount": "10000"})
    add_entry(session, seed.project_id, seed.electrical_id, 4000)
    add_entry(session, seed.project_id, seed.electrical_id, 500, type="addition_expense")
    add_entry(session, seed.project_id, seed.electrical_id, 6000, type="income")
    add_entry(session, seed.project_id, seed.electrical_id, 9999, status="pending")
    add_po(session, seed.project_id, seed.electrical_id, 1000)

    overview = service.overview(seed.project_id)
    row = overview["categories"][0]

    assert row["actual_expenses"] == Decimal("4500.00")
    assert row["received_income"] == Decimal("6000.00")
    assert row["committed_amount"] == Decimal("1000.00")
    assert row["expected_profit"] == Decimal("5500.00")
    assert row["pending_amount"] == Decimal("4000.00")
    assert row["percentage_used"] == Decimal("55.00")
    assert row["status"] == "on_budget"

    totals = overview["totals"]
    assert totals["total_contract"] == Decimal("10000.00")
    assert totals["expected_profit"] == Decimal("5500.00")
    assert totals["pending_from_client"] == Decimal("4000.00")
    assert totals["percentage_complete"] == Decimal("45.00")


def test_overview_reports_uncategorized_expenses(service, session, seed):
    add_entry(session, seed.project_id, None, 250)

    totals = service.overview(seed.project_id)["totals"]

    assert totals["uncategorized_expenses"] == Decimal("250.00")
    assert totals["total_contract"] == Decimal("0.00")
    assert totals["percentage_complete"] == Decimal("0.00")


def test_duplicate_contract_item_carries_existing_row(service, project, seed):
    first = service.add_contract_item(project, {"category_id": seed.electrical_id, "contract_amount": "100"})

    with pytest.raises(DuplicateContractItem) as excinfo:
        service.add_contract_item(project, {"category_id": seed.electrical_id, "contract_amount": "200"})

    assert excinfo.value.existing.id == first.id
    assert excinfo.value.to_dict()["existing_item"]["id"] == first.id


def test_contract_item_amount_must_be_positive(service, project, seed):
    with pytest.raises(ValidationError):
        service.add_contract_item(project, {"category_id": seed.electrical_id, "contract_amount": "-5"})


def test_update_and_delete_contract_item(service, repository, project, seed):
    item = service.add_contract_item(project, {"category_id": seed.electrical_id, "contract_amount": "100"})

    service.update_contract_item(item, {"contract_amount": "150", "description": "Main panel"})
    assert item.contract_amount == Decimal("150.00")
    assert item.description == "Main panel"

    service.delete_contract_item(item)
    assert repository.contract_items(seed.project_id) == []


def test_assign_uncategorized(service, session, project, seed):
    add_entry(session, seed.project_id, None, 10)
    add_entry(session, seed.project_id, None, 20)
    add_entry(session, seed.other_project_id, None, 30)

    moved = service.assign_uncategorized(project, seed.plumbing_id)

    assert moved == 2
    remaining = session.query(CashFlowEntry).filter(CashFlowEntry.category_id.is_(None)).count()
    assert remaining == 1


def test_setup_contract_upserts_items(service, repository, project, seed):
    service.add_contract_item(project, {"category_id": seed.electrical_id, "contract_amount": "100"})

    summary = service.setup_contract(
        project,
        "50000",
        [
            {"category_id": seed.electrical_id, "amount": "20000", "enabled": True},
            {"category_id": seed.plumbing_id, "amount": "15000"},
            {"category_id": seed.income_category_id, "amount": "999", "enabled": False},
        ],
    )

    assert project.contract_value == Decimal("50000.00")
    assert summary["allocated"] == Decimal("35000.00")
    assert summary["remaining"] == Decimal("15000.00")
    amounts = {item.category_id: item.contract_amount for item in repository.contract_items(seed.project_id)}
    assert amounts == {seed.electrical_id: Decimal("20000.00"), seed.plumbing_id: Decimal("15000.00")}


def test_setup_contract_requires_amount_for_selected_items(service, project, seed):
    with pytest.raises(ValidationError) as excinfo:
        service.setup_contract(project, "50000", [{"category_id": seed.electrical_id, "amount": ""}])

    assert "items[0].amount" in excinfo.value.fields


def test_overview_groups_expenses_outside_contract_items(service, session, project, seed):
    service.add_contract_item(project, {"category_id": seed.electrical_id, "contract_amount": "10000"})
    add_entry(session, seed.project_id, seed.electrical_id, 4000)
    add_entry(session, seed.project_id, seed.plumbing_id, 700)
    add_entry(session, seed.project_id, seed.plumbing_id, 300, type="addition_expense")
    add_entry(session, seed.project_id, seed.plumbing_id, 900, status="pending")
    add_entry(session, seed.project_id, None, 250)

    overview = service.overview(seed.project_id)

    assert overview["totals"]["overflow_total"] == Decimal("1250.00")
    groups = overview["overflow_by_category"]
    assert [(g["category_id"], g["total"], g["count"]) for g in groups] == [
        (seed.plumbing_id, Decimal("1000.00"), 2),
        (None, Decimal("250.00"), 1),
    ]
    assert groups[1]["category_name"] == "Uncategorized"


def test_setup_contract_rejects_rounded_zero_and_malformed_items(service, project, seed):
    with pytest.raises(ValidationError):
        service.setup_contract(project, "0.004", [])

    with pytest.raises(ValidationError) as excinfo:
        service.setup_contract(project, "100", ["electrical"])
    assert excinfo.value.fields == {"items": "invalid"}
