"""
Projekta – Domain Models

Construction project management:
- Users and per-project membership (owner / manager / viewer)
- Spending categories (global defaults + project custom categories)
- Cash-flow ledger (v1 legacy types/statuses, v2 subset)
- Budget v1: budget settings + per-category budgeted amounts
- Financials v2: contract items
- Purchase orders (procurement commitments)
- Audit log

IMPORTANT:
- Money columns are Numeric and handled as Decimal everywhere.
- Ledger entries generated by a purchase order reference it through
  source_purchase_order_id (explicit FK, never parsed out of notes).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from .extensions import db
from .status import (
    DELIVERY_PENDING,
    DELIVERY_STATUS_LABELS,
    PAYMENT_PAID,
    PAYMENT_UNPAID,
    PAYMENT_STATUS_LABELS,
    PO_STATUS_LABELS,
    comprehensive_status,
    payment_method_label,
)


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def _to_decimal(value) -> Decimal:
    """Convert Numeric/None to Decimal safely."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value))


def _money(x: Decimal) -> Decimal:
    return x.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _iso(value):
    return value.isoformat() if value else None


MONEY = db.Numeric(14, 2)


# ---------------------------------------------------------------------
# Users & projects
# ---------------------------------------------------------------------
class User(UserMixin, db.Model):
    """System login user."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    password_hash = db.Column(db.String(255), nullable=False)

    is_admin = db.Column(db.Boolean, default=False, nullable=False, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    memberships = db.relationship(
        "ProjectMember",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def membership_for(self, project_id: int) -> "ProjectMember | None":
        for membership in self.memberships:
            if membership.project_id == project_id:
                return membership
        return None

    def can_view_project(self, project_id: int) -> bool:
        return self.is_admin or self.membership_for(project_id) is not None

    def can_edit_project(self, project_id: int) -> bool:
        if self.is_admin:
            return True
        membership = self.membership_for(project_id)
        return bool(membership and membership.can_edit)

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "full_name": self.full_name,
            "email": self.email,
            "is_admin": self.is_admin,
            "is_active": self.is_active,
        }

    def __repr__(self):
        return f"<User {self.username}>"


class Project(db.Model):
    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False, index=True)
    address = db.Column(db.String(255), nullable=True)
    description = db.Column(db.Text, nullable=True)

    # Contract value with the client; budget setup and the contract wizard both write it
    contract_value = db.Column(MONEY, nullable=True)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    members = db.relationship(
        "ProjectMember",
        back_populates="project",
        cascade="all, delete-orphan",
    )

    budget_settings = db.relationship(
        "BudgetSettings",
        back_populates="project",
        uselist=False,
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "description": self.description,
            "contract_value": self.contract_value,
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<Project {self.name}>"


class ProjectMember(db.Model):
    __tablename__ = "project_members"

    ROLE_OWNER = "owner"
    ROLE_MANAGER = "manager"
    ROLE_VIEWER = "viewer"
    ROLES = (ROLE_OWNER, ROLE_MANAGER, ROLE_VIEWER)

    id = db.Column(db.Integer, primary_key=True)

    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role = db.Column(db.String(20), nullable=False, default=ROLE_VIEWER)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    project = db.relationship("Project", back_populates="members")
    user = db.relationship("User", back_populates="memberships")

    __table_args__ = (db.UniqueConstraint("project_id", "user_id", name="uq_project_member"),)

    @property
    def can_edit(self) -> bool:
        return self.role in (self.ROLE_OWNER, self.ROLE_MANAGER)

    def to_dict(self):
        return {
            "project_id": self.project_id,
            "user_id": self.user_id,
            "username": self.user.username if self.user else None,
            "role": self.role,
        }


# ---------------------------------------------------------------------
# Categories & budgets
# ---------------------------------------------------------------------
class Category(db.Model):
    """Spending/income bucket. project_id NULL means a global default category."""

    __tablename__ = "cash_flow_categories"

    TYPE_INCOME = "income"
    TYPE_EXPENSE = "expense"
    TYPES = (TYPE_INCOME, TYPE_EXPENSE)

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(120), nullable=False)
    type = db.Column(db.String(20), nullable=False, default=TYPE_EXPENSE, index=True)
    icon = db.Column(db.String(16), nullable=True, default="📦")
    color = db.Column(db.String(16), nullable=True, default="#6366F1")

    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint("project_id", "name", name="uq_category_project_name"),)

    def is_visible_to(self, project_id: int) -> bool:
        return self.project_id is None or self.project_id == project_id

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "icon": self.icon,
            "color": self.color,
            "project_id": self.project_id,
        }


class BudgetSettings(db.Model):
    __tablename__ = "project_budget_settings"

    id = db.Column(db.Integer, primary_key=True)

    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    total_budget = db.Column(MONEY, nullable=False, default=Decimal("0.00"))
    setup_completed = db.Column(db.Boolean, nullable=False, default=False)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    project = db.relationship("Project", back_populates="budget_settings")

    def to_dict(self):
        return {
            "project_id": self.project_id,
            "total_budget": self.total_budget,
            "setup_completed": self.setup_completed,
        }


class CategoryBudget(db.Model):
    """Budget v1: flat budgeted amount per category per project."""

    __tablename__ = "project_category_budgets"

    id = db.Column(db.Integer, primary_key=True)

    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category_id = db.Column(
        db.Integer,
        db.ForeignKey("cash_flow_categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    budgeted_amount = db.Column(MONEY, nullable=False, default=Decimal("0.00"))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    category = db.relationship("Category")

    __table_args__ = (db.UniqueConstraint("project_id", "category_id", name="uq_category_budget"),)


class ContractItem(db.Model):
    """Financials v2: what the client's contract allocates to a category."""

    __tablename__ = "contract_items"

    id = db.Column(db.Integer, primary_key=True)

    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category_id = db.Column(
        db.Integer,
        db.ForeignKey("cash_flow_categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    contract_amount = db.Column(MONEY, nullable=False, default=Decimal("0.00"))
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    category = db.relationship("Category")

    __table_args__ = (db.UniqueConstraint("project_id", "category_id", name="uq_contract_item"),)

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "category_id": self.category_id,
            "category": self.category.to_dict() if self.category else None,
            "contract_amount": self.contract_amount,
            "description": self.description,
        }


# ---------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------
class CashFlowEntry(db.Model):
    """Atomic recorded money movement."""

    __tablename__ = "cash_flow"

    id = db.Column(db.Integer, primary_key=True)

    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category_id = db.Column(
        db.Integer,
        db.ForeignKey("cash_flow_categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    type = db.Column(db.String(30), nullable=False, index=True)
    status = db.Column(db.String(30), nullable=False, default="paid", index=True)

    amount = db.Column(MONEY, nullable=False)
    description = db.Column(db.Text, nullable=False)
    date = db.Column(db.Date, nullable=False, index=True)
    notes = db.Column(db.Text, nullable=True)

    source_purchase_order_id = db.Column(
        db.Integer,
        db.ForeignKey("purchase_orders.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    category = db.relationship("Category")
    source_purchase_order = db.relationship("PurchaseOrder", back_populates="generated_entries")

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "category_id": self.category_id,
            "category": self.category.to_dict() if self.category else None,
            "type": self.type,
            "status": self.status,
            "amount": self.amount,
            "description": self.description,
            "date": _iso(self.date),
            "notes": self.notes,
            "source_purchase_order_id": self.source_purchase_order_id,
        }


# ---------------------------------------------------------------------
# Procurement commitments
# ---------------------------------------------------------------------
class PurchaseOrder(db.Model):
    __tablename__ = "purchase_orders"

    id = db.Column(db.Integer, primary_key=True)

    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category_id = db.Column(
        db.Integer,
        db.ForeignKey("cash_flow_categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    po_number = db.Column(db.String(100), nullable=True, index=True)
    supplier_name = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)

    total_amount = db.Column(MONEY, nullable=False)
    paid_amount = db.Column(MONEY, nullable=False, default=Decimal("0.00"))

    # legacy single status, mirrors payment (paid/ordered)
    status = db.Column(db.String(20), nullable=False, default="ordered", index=True)

    delivery_status = db.Column(db.String(20), nullable=False, default=DELIVERY_PENDING, index=True)
    expected_delivery_date = db.Column(db.Date, nullable=True)
    actual_delivery_date = db.Column(db.Date, nullable=True)

    payment_status = db.Column(db.String(20), nullable=False, default=PAYMENT_UNPAID, index=True)
    payment_date = db.Column(db.Date, nullable=True)
    payment_method = db.Column(db.String(20), nullable=True)
    payment_reference = db.Column(db.String(120), nullable=True)

    order_date = db.Column(db.Date, nullable=False, index=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    category = db.relationship("Category")

    generated_entries = db.relationship(
        "CashFlowEntry",
        back_populates="source_purchase_order",
    )

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PAYMENT_PAID

    @property
    def committed_amount(self) -> Decimal:
        """Open exposure: nothing once paid, otherwise total minus what was paid."""
        if self.is_paid:
            return Decimal("0.00")
        return _money(_to_decimal(self.total_amount) - _to_decimal(self.paid_amount))

    @property
    def comprehensive_status(self) -> dict:
        return comprehensive_status(self.payment_status, self.delivery_status)

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "category_id": self.category_id,
            "category": self.category.to_dict() if self.category else None,
            "po_number": self.po_number,
            "supplier_name": self.supplier_name,
            "description": self.description,
            "total_amount": self.total_amount,
            "paid_amount": self.paid_amount,
            "committed_amount": self.committed_amount,
            "status": self.status,
            "status_label": PO_STATUS_LABELS.get(self.status, self.status),
            "delivery_status": self.delivery_status,
            "delivery_status_label": DELIVERY_STATUS_LABELS.get(self.delivery_status),
            "expected_delivery_date": _iso(self.expected_delivery_date),
            "actual_delivery_date": _iso(self.actual_delivery_date),
            "payment_status": self.payment_status,
            "payment_status_label": PAYMENT_STATUS_LABELS.get(self.payment_status),
            "payment_date": _iso(self.payment_date),
            "payment_method": self.payment_method,
            "payment_method_label": payment_method_label(self.payment_method),
            "payment_reference": self.payment_reference,
            "order_date": _iso(self.order_date),
            "notes": self.notes,
            "comprehensive_status": self.comprehensive_status,
        }

    def __repr__(self):
        return f"<PurchaseOrder {self.po_number or self.id} {self.supplier_name}>"


class AuditLog(db.Model):
    """Who did what to which entity, with before/after snapshots."""

    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    username_snapshot = db.Column(db.String(150), nullable=True)

    entity_type = db.Column(db.String(50), nullable=False, index=True)
    entity_id = db.Column(db.Integer, nullable=False, index=True)

    action = db.Column(db.String(20), nullable=False, index=True)

    before_data = db.Column(db.Text, nullable=True)
    after_data = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    user = db.relationship("User", backref=db.backref("audit_entries", lazy=True))
