"""
projekta/seed.py

Seed the global default categories.

Rules:
- Safe to run multiple times (idempotent): existing names are skipped.
- Only global categories (project_id NULL) are seeded; projects add their
  own custom categories from the budget setup or the categories API.
"""

from __future__ import annotations

from .extensions import db
from .models import Category


DEFAULT_EXPENSE_CATEGORIES = [
    # name, icon, color
    ("Electrical", "⚡", "#F59E0B"),
    ("Plumbing", "🔧", "#3B82F6"),
    ("Painting", "🎨", "#EC4899"),
    ("Tiling", "🧱", "#F97316"),
    ("Air conditioning", "❄️", "#06B6D4"),
    ("Kitchen", "🍳", "#84CC16"),
    ("Bathroom", "🚿", "#0EA5E9"),
    ("Doors & windows", "🚪", "#A16207"),
    ("Structure", "🏗️", "#6B7280"),
    ("Engineering", "📐", "#8B5CF6"),
    ("Elevators", "🛗", "#14B8A6"),
    ("Safety", "🦺", "#EF4444"),
    ("General", "📝", "#6366F1"),
]

DEFAULT_INCOME_CATEGORIES = [
    ("Client payments", "💰", "#10B981"),
    ("Contract variations", "➕", "#22C55E"),
]


def seed_default_categories() -> int:
    """Create missing default categories. Returns how many were added."""
    existing = {
        c.name for c in Category.query.filter(Category.project_id.is_(None)).all()
    }

    added = 0
    for category_type, rows in (
        (Category.TYPE_EXPENSE, DEFAULT_EXPENSE_CATEGORIES),
        (Category.TYPE_INCOME, DEFAULT_INCOME_CATEGORIES),
    ):
        for name, icon, color in rows:
            if name in existing:
                continue
            db.session.add(Category(name=name, type=category_type, icon=icon, color=color, project_id=None))
            added += 1

    db.session.commit()
    return added
