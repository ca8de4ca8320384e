"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from plura.infrastructure.persistence.postgresql.models import BaseModel

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# name, description, price, category, rating, featured
_THEMES: list[tuple[str, str, float, str, float, bool]] = [
    ("Aurora", "Gradient-heavy landing theme for SaaS launches", 49.0, "saas", 4.8, True),
    ("Storefront", "Product grid and checkout funnel for shops", 39.0, "ecommerce", 4.6, True),
    ("Portfolio Pro", "Case-study layout for agencies and freelancers", 29.0, "portfolio", 4.5, False),
    ("Webinar Kit", "Registration, reminder and replay pages", 35.0, "events", 4.3, False),
    ("Minimal Blog", "Typography-first blog theme", 0.0, "blog", 4.1, False),
]

_PLUGINS: list[tuple[str, str, float, str, float, bool]] = [
    ("Countdown Timer", "Urgency timer block for sales pages", 9.0, "conversion", 4.7, True),
    ("Exit Intent Popup", "Capture leads before visitors leave", 15.0, "conversion", 4.4, True),
    ("Testimonials Carousel", "Rotating social proof block", 12.0, "content", 4.2, False),
    ("Analytics Bridge", "Send funnel events to external analytics", 19.0, "analytics", 4.0, False),
]

# key, value, type, description, is_public
_SYSTEM_CONFIG: list[tuple[str, str, str, str, bool]] = [
    ("platform.name", "Plura", "string", "Display name of the platform", True),
    ("marketplace.enabled", "true", "boolean", "Whether the marketplace is open", True),
    ("support.email", "support@plura.com", "string", "Support contact address", True),
    ("uploads.max_file_size_mb", "4", "number", "Upload size limit per file", False),
]


def _catalogue_rows(rows):
    return [
        {
            "name": name,
            "description": description,
            "price": price,
            "category": category,
            "rating": rating,
            "featured": featured,
        }
        for name, description, price, category, rating, featured in rows
    ]


def upgrade() -> None:
    bind = op.get_bind()
    BaseModel.metadata.drop_all(bind=bind)
    BaseModel.metadata.create_all(bind=bind)

    for table in ("marketplace_themes", "marketplace_plugins"):
        source = _THEMES if table == "marketplace_themes" else _PLUGINS
        bind.execute(
            sa.text(
                f"INSERT INTO {table} "
                "(id, name, description, price, category, rating, downloads, featured, "
                "is_active, created_at, updated_at) "
                "VALUES (gen_random_uuid(), :name, :description, :price, :category, "
                ":rating, 0, :featured, true, NOW(), NOW())"
            ),
            _catalogue_rows(source),
        )

    bind.execute(
        sa.text(
            "INSERT INTO system_configs "
            "(id, key, value, type, description, is_public, created_at, updated_at) "
            "VALUES (gen_random_uuid(), :key, :value, :type, :description, :is_public, "
            "NOW(), NOW())"
        ),
        [
            {
                "key": key,
                "value": value,
                "type": value_type,
                "description": description,
                "is_public": is_public,
            }
            for key, value, value_type, description, is_public in _SYSTEM_CONFIG
        ],
    )


def downgrade() -> None:
    bind = op.get_bind()
    BaseModel.metadata.drop_all(bind=bind)
