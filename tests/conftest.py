from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from projekta import create_app
from projekta.extensions import db
from projekta.models import (
    BudgetSettings,
    CashFlowEntry,
    Category,
    CategoryBudget,
    Project,
    ProjectMember,
    PurchaseOrder,
    User,
)
from projekta.repository import LedgerRepository

PASSWORD = "secret-pass"


@pytest.fixture
def app():
    app = create_app("config.TestingConfig")
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def seed(app):
    """
    Users, one project with owner/manager/viewer members and two categories.

    Returns plain ids so tests can use them outside the app context.
    """
    with app.app_context():
        users = {}
        for username, is_admin in (
            ("admin", True),
            ("owner", False),
            ("manager", False),
            ("viewer", False),
            ("outsider", False),
        ):
            user = User(username=username, full_name=username.title(), is_admin=is_admin, is_active=True)
            user.set_password(PASSWORD)
            db.session.add(user)
            users[username] = user
        db.session.flush()

        project = Project(name="Villa Athens", contract_value=Decimal("100000.00"), created_by_id=users["owner"].id)
        db.session.add(project)
        db.session.flush()

        for username, role in (
            ("owner", ProjectMember.ROLE_OWNER),
            ("manager", ProjectMember.ROLE_MANAGER),
            ("viewer", ProjectMember.ROLE_VIEWER),
        ):
            db.session.add(ProjectMember(project_id=project.id, user_id=users[username].id, role=role))

        electrical = Category(name="Electrical", type=Category.TYPE_EXPENSE, project_id=None)
        plumbing = Category(name="Plumbing", type=Category.TYPE_EXPENSE, project_id=None)
        client_payments = Category(name="Client payments", type=Category.TYPE_INCOME, project_id=None)
        db.session.add_all([electrical, plumbing, client_payments])

        other = Project(name="Other site", created_by_id=users["outsider"].id)
        db.session.add(other)
        db.session.flush()
        db.session.add(ProjectMember(project_id=other.id, user_id=users["outsider"].id, role=ProjectMember.ROLE_OWNER))
        foreign_category = Category(name="Roofing", type=Category.TYPE_EXPENSE, project_id=other.id)
        db.session.add(foreign_category)

        db.session.commit()

        return SimpleNamespace(
            project_id=project.id,
            other_project_id=other.id,
            electrical_id=electrical.id,
            plumbing_id=plumbing.id,
            income_category_id=client_payments.id,
            foreign_category_id=foreign_category.id,
            user_ids={name: user.id for name, user in users.items()},
        )


@pytest.fixture
def session(app, seed):
    """An app context for service-level tests, bound to the test database."""
    with app.app_context():
        yield db.session


@pytest.fixture
def repository(session):
    return LedgerRepository(session)


@pytest.fixture
def project(session, seed):
    return session.get(Project, seed.project_id)


@pytest.fixture
def client_for(app, seed):
    """Factory: a fresh test client logged in as the given user."""

    def _client_for(username):
        client = app.test_client()
        response = client.post("/auth/login", json={"username": username, "password": PASSWORD})
        assert response.status_code == 200, response.get_json()
        return client

    return _client_for


# ---------------------------------------------------------------------
# Row builders
# ---------------------------------------------------------------------
def add_budget(session, project_id, category_id, amount, total=None):
    settings = session.query(BudgetSettings).filter_by(project_id=project_id).first()
    if settings is None:
        settings = BudgetSettings(project_id=project_id, total_budget=Decimal(str(total or amount)))
        session.add(settings)
    settings.setup_completed = True
    budget = CategoryBudget(project_id=project_id, category_id=category_id, budgeted_amount=Decimal(str(amount)))
    session.add(budget)
    session.flush()
    return budget


def add_entry(session, project_id, category_id, amount, type="expense", status="paid", on=None):
    entry = CashFlowEntry(
        project_id=project_id,
        category_id=category_id,
        type=type,
        status=status,
        amount=Decimal(str(amount)),
        description=f"{type} {amount}",
        date=on or date(2024, 3, 1),
    )
    session.add(entry)
    session.flush()
    return entry


def add_po(session, project_id, category_id, total, paid=0, payment_status="unpaid", **fields):
    po = PurchaseOrder(
        project_id=project_id,
        category_id=category_id,
        supplier_name=fields.pop("supplier_name", "Acme Supplies"),
        total_amount=Decimal(str(total)),
        paid_amount=Decimal(str(paid)),
        payment_status=payment_status,
        order_date=fields.pop("order_date", date(2024, 3, 1)),
        **fields,
    )
    session.add(po)
    session.flush()
    return po
