"""Initial schema: users, tags, articles, article_tags, page_views

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("username", sa.String(30), nullable=False),
        sa.Column("password_hash", sa.String(128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "tags",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(50), nullable=False),
    )
    op.create_index("ix_tags_name", "tags", ["name"], unique=True)

    op.create_table(
        "articles",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("author_id", sa.Uuid, nullable=False),
        sa.Column("deleted", sa.Boolean, nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_articles_author_id", "articles", ["author_id"])
    op.create_index("ix_articles_created_at", "articles", ["created_at"])
    op.create_index("ix_articles_author_id_status", "articles", ["author_id", "status"])
    op.create_index("ix_articles_status_created_at", "articles", ["status", "created_at"])
    op.create_index(
        "uq_articles_author_id_title_live",
        "articles",
        ["author_id", "title"],
        unique=True,
        postgresql_where=sa.text("NOT deleted"),
        sqlite_where=sa.text("NOT deleted"),
    )

    op.create_table(
        "article_tags",
        sa.Column("article_id", sa.Uuid, sa.ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("tag_id", sa.Integer, sa.ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "page_views",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("article_id", sa.Uuid, sa.ForeignKey("articles.id"), nullable=False),
        sa.Column("viewed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ip_address", sa.String(64), nullable=False),
        sa.Column("user_agent", sa.Text, nullable=True),
        sa.Column("device_type", sa.String(10), nullable=False),
        sa.Column("device_os", sa.String(100), nullable=True),
        sa.Column("device_browser", sa.String(100), nullable=True),
        sa.CheckConstraint(
            "device_type IN ('mobile', 'tablet', 'desktop', 'unknown')",
            name="ck_page_views_device_type",
        ),
    )
    op.create_index("ix_page_views_article_id", "page_views", ["article_id"])
    op.create_index("ix_page_views_viewed_at", "page_views", ["viewed_at"])
    op.create_index("ix_page_views_ip_address", "page_views", ["ip_address"])
    op.create_index("ix_page_views_device_type", "page_views", ["device_type"])


def downgrade() -> None:
    op.drop_table("page_views")
    op.drop_table("article_tags")
    op.drop_table("articles")
    op.drop_table("tags")
    op.drop_table("users")
