from datetime import date
from decimal import Decimal

import pytest
from conftest import add_po

from projekta.errors import StateError, ValidationError
from projekta.ledger import EXPENSE_TYPES
from projekta.models import CashFlowEntry
from projekta.purchase_orders import PurchaseOrderService, payment_entry_description


@pytest.fixture
def service(repository):
    return PurchaseOrderService(repository)


def _entries(session, project_id):
    return session.query(CashFlowEntry).filter_by(project_id=project_id).all()


# ---------------------------------------------------------------------
# Create / update
# ---------------------------------------------------------------------
def test_create_defaults(service, project, seed):
    po = service.create(
        project,
        {"supplier_name": "Volt Ltd", "total_amount": "1500", "category_id": seed.electrical_id},
        today=date(2024, 5, 2),
    )

    assert po.delivery_status == "pending"
    assert po.payment_status == "unpaid"
    assert po.paid_amount == Decimal("0.00")
    assert po.order_date == date(2024, 5, 2)
    assert po.committed_amount == Decimal("1500.00")
    assert po.status == "ordered"


def test_create_requires_fields(service, project):
    with pytest.raises(ValidationError) as excinfo:
        service.create(project, {"total_amount": "0"})

    assert set(excinfo.value.fields) == {"supplier_name", "total_amount", "category_id"}


def test_create_rejects_category_of_another_project(service, project, seed):
    with pytest.raises(ValidationError):
        service.create(
            project,
            {"supplier_name": "X", "total_amount": "10", "category_id": seed.foreign_category_id},
        )


def test_create_paid_records_payment_without_ledger_entry(service, session, project, seed):
    po = service.create(
        project,
        {
            "supplier_name": "Volt Ltd",
            "total_amount": "900",
            "category_id": seed.electrical_id,
            "payment_status": "paid",
            "payment_method": "cash",
        },
        today=date(2024, 5, 2),
    )

    assert po.paid_amount == Decimal("900.00")
    assert po.payment_date == date(2024, 5, 2)
    assert po.committed_amount == Decimal("0.00")
    assert _entries(session, seed.project_id) == []


def test_create_delivered_stamps_delivery_date(service, project, seed):
    po = service.create(
        project,
        {
            "supplier_name": "Volt Ltd",
            "total_amount": "100",
            "category_id": seed.electrical_id,
            "delivery_status": "delivered",
            "expected_delivery_date": "2024-06-01",
        },
        today=date(2024, 5, 2),
    )

    assert po.actual_delivery_date == date(2024, 5, 2)
    assert po.expected_delivery_date is None


def test_update_total_of_paid_po_is_rejected(service, session, project, seed):
    po = add_po(session, seed.project_id, seed.electrical_id, 500)
    service.mark_paid(po)

    with pytest.raises(StateError):
        service.update(po, project, {"total_amount": "600"})


def test_update_commercial_fields(service, session, project, seed):
    po = add_po(session, seed.project_id, seed.electrical_id, 500)

    service.update(po, project, {"supplier_name": "New Supplier", "total_amount": "750", "po_number": "PO-7"})

    assert po.supplier_name == "New Supplier"
    assert po.total_amount == Decimal("750.00")
    assert po.po_number == "PO-7"


# ---------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------
def test_mark_delivered_twice_only_restamps(service, session, seed):
    po = add_po(session, seed.project_id, seed.electrical_id, 500, expected_delivery_date=date(2024, 4, 1))

    service.mark_delivered(po, today=date(2024, 4, 3))
    service.mark_delivered(po, today=date(2024, 4, 3))

    assert po.delivery_status == "delivered"
    assert po.actual_delivery_date == date(2024, 4, 3)
    assert po.expected_delivery_date is None


def test_undo_delivered_keeps_payment(service, session, seed):
    po = add_po(session, seed.project_id, seed.electrical_id, 500)
    service.mark_paid(po)
    service.mark_delivered(po)

    service.undo_delivered(po)

    assert po.delivery_status == "pending"
    assert po.actual_delivery_date is None
    assert po.payment_status == "paid"


# ---------------------------------------------------------------------
# Payment
# ---------------------------------------------------------------------
def test_mark_paid_writes_ledger_entry(service, session, seed):
    po = add_po(session, seed.project_id, seed.electrical_id, 2000, po_number="PO-12", description="Cables")

    entry = service.mark_paid(po, payment_method="bank_transfer", payment_reference="TRX-1", today=date(2024, 5, 1))

    assert entry.type == "expense"
    assert entry.status == "paid"
    assert entry.amount == Decimal("2000.00")
    assert entry.category_id == seed.electrical_id
    assert entry.source_purchase_order_id == po.id
    assert entry.date == date(2024, 5, 1)
    assert "Acme Supplies" in entry.description and "PO-12" in entry.description
    assert po.payment_status == "paid"
    assert po.paid_amount == Decimal("2000.00")
    assert po.payment_method == "bank_transfer"
    assert po.status == "paid"
    assert len(_entries(session, seed.project_id)) == 1


def test_mark_paid_on_paid_po_is_noop(service, session, seed):
    po = add_po(session, seed.project_id, seed.electrical_id, 2000)
    service.mark_paid(po)

    assert service.mark_paid(po) is None
    assert len(_entries(session, seed.project_id)) == 1


def test_mark_paid_rejects_unknown_method(service, session, seed):
    po = add_po(session, seed.project_id, seed.electrical_id, 2000)

    with pytest.raises(ValidationError):
        service.mark_paid(po, payment_method="barter")


def test_mark_paid_then_undo_restores_state(service, session, seed):
    manual = CashFlowEntry(
        project_id=seed.project_id,
        category_id=seed.electrical_id,
        type="expense",
        status="paid",
        amount=Decimal("10"),
        description="Manual entry",
        date=date(2024, 1, 1),
    )
    session.add(manual)
    po = add_po(session, seed.project_id, seed.electrical_id, 2000)
    before = len(_entries(session, seed.project_id))

    service.mark_paid(po)
    removed = service.undo_paid(po)

    assert removed == 1
    assert len(_entries(session, seed.project_id)) == before
    assert po.payment_status == "unpaid"
    assert po.paid_amount == Decimal("0.00")
    assert po.payment_date is None
    assert po.payment_method is None
    assert po.status == "ordered"


def test_undo_paid_on_unpaid_po_is_noop(service, session, seed):
    po = add_po(session, seed.project_id, seed.electrical_id, 2000)

    assert service.undo_paid(po) == 0


def test_committed_amount_follows_payment(session, seed):
    open_po = add_po(session, seed.project_id, seed.electrical_id, 1000, paid=250)
    paid_po = add_po(session, seed.project_id, seed.electrical_id, 1000, paid=1000, payment_status="paid")

    assert open_po.committed_amount == Decimal("750.00")
    assert paid_po.committed_amount == Decimal("0.00")


# ---------------------------------------------------------------------
# Delete / list
# ---------------------------------------------------------------------
def test_delete_paid_po_keeps_ledger_entry(service, session, seed):
    po = add_po(session, seed.project_id, seed.electrical_id, 2000)
    entry = service.mark_paid(po)

    removed = service.delete(po)

    assert removed == 0
    session.refresh(entry)
    assert entry.source_purchase_order_id is None
    assert len(_entries(session, seed.project_id)) == 1


def test_delete_with_purge_removes_ledger_entry(service, session, seed):
    po = add_po(session, seed.project_id, seed.electrical_id, 2000)
    service.mark_paid(po)

    removed = service.delete(po, purge_payment=True)

    assert removed == 1
    assert _entries(session, seed.project_id) == []


def test_list_filters_and_counts(service, session, seed):
    add_po(session, seed.project_id, seed.electrical_id, 100, order_date=date(2024, 1, 1))
    add_po(session, seed.project_id, seed.plumbing_id, 200, order_date=date(2024, 2, 1))
    paid = add_po(session, seed.project_id, seed.plumbing_id, 300, order_date=date(2024, 3, 1))
    service.mark_paid(paid)

    orders = service.list(seed.project_id)
    assert [po.total_amount for po in orders] == [Decimal("300.00"), Decimal("200.00"), Decimal("100.00")]

    assert len(service.list(seed.project_id, category_id=seed.plumbing_id)) == 2
    assert len(service.list(seed.project_id, payment_status="unpaid")) == 2

    counts = service.counts(orders)
    assert counts["all"] == 3
    assert counts["paid"] == 1
    assert counts["unpaid"] == 2
    assert counts["committed_amount"] == Decimal("300.00")

    with pytest.raises(ValidationError):
        service.list(seed.project_id, payment_status="overdue")


def test_payment_entry_description():
    class FakePO:
        supplier_name = "Volt Ltd"
        description = "Cables"
        po_number = "PO-1"

    assert payment_entry_description(FakePO()) == "Payment for purchase order: Volt Ltd - Cables (PO: PO-1)"


def test_create_rejects_amount_that_rounds_to_zero(service, project, seed):
    with pytest.raises(ValidationError) as excinfo:
        service.create(
            project,
            {"supplier_name": "Volt Ltd", "total_amount": "0.004", "category_id": seed.electrical_id},
        )

    assert excinfo.value.fields == {"total_amount": "must be positive"}


def test_moving_paid_po_moves_its_payment(service, session, repository, project, seed):
    po = add_po(session, seed.project_id, seed.electrical_id, 3000)
    entry = service.mark_paid(po)

    service.update(po, project, {"category_id": seed.plumbing_id})

    assert po.category_id == seed.plumbing_id
    assert entry.category_id == seed.plumbing_id
    spent = repository.paid_totals_by_category(seed.project_id, EXPENSE_TYPES)
    assert spent == {seed.plumbing_id: Decimal("3000.00")}
