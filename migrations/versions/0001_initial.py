"""Initial baseline migration for DeckForge."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Users ----------------------------------------------------------------
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=80), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=120), nullable=True),
        sa.Column("api_token_hash", sa.String(length=64), nullable=True),
        sa.Column("api_token_hint", sa.String(length=12), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("api_token_hash", name="uq_users_api_token_hash"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", name="fk_audit_logs_user_id_users"), nullable=True),
        sa.Column("action", sa.String(length=120), nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])

    # Card catalog ---------------------------------------------------------
    op.create_table(
        "cards",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("scryfall_id", sa.String(length=36), nullable=True),
        sa.Column("oracle_id", sa.String(length=36), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("set_code", sa.String(length=10), nullable=True),
        sa.Column("collector_number", sa.String(length=20), nullable=True),
        sa.Column("rarity", sa.String(length=16), nullable=True),
        sa.Column("mana_cost", sa.String(length=64), nullable=True),
        sa.Column("cmc", sa.Float(), nullable=False, server_default="0"),
        sa.Column("type_line", sa.Text(), nullable=True),
        sa.Column("oracle_text", sa.Text(), nullable=True),
        sa.Column("power", sa.String(length=8), nullable=True),
        sa.Column("toughness", sa.String(length=8), nullable=True),
        sa.Column("colors", sa.JSON(), nullable=True),
        sa.Column("color_identity", sa.JSON(), nullable=True),
        sa.Column("keywords", sa.JSON(), nullable=True),
        sa.Column("prices", sa.JSON(), nullable=True),
        sa.Column("image_uri", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_cards_scryfall_id", "cards", ["scryfall_id"], unique=True)
    op.create_index("ix_cards_oracle_id", "cards", ["oracle_id"])
    op.create_index("ix_cards_name", "cards", ["name"])
    op.create_index("ix_cards_set_print", "cards", ["set_code", "collector_number"])
    op.create_index("ix_cards_updated_at", "cards", ["updated_at"])

    # Decks ----------------------------------------------------------------
    op.create_table(
        "decks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "owner_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", name="fk_decks_owner_user_id_users", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("format", sa.String(length=32), nullable=False, server_default="commander"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("power_level", sa.Integer(), nullable=True),
        sa.Column("power_scored_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_decks_owner_user_id", "decks", ["owner_user_id"])

    op.create_table(
        "deck_cards",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "deck_id",
            sa.Integer(),
            sa.ForeignKey("decks.id", name="fk_deck_cards_deck_id_decks", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "card_id",
            sa.Integer(),
            sa.ForeignKey("cards.id", name="fk_deck_cards_card_id_cards", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("board", sa.String(length=16), nullable=False, server_default="main"),
        sa.Column("is_commander", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.CheckConstraint("quantity >= 1", name="ck_deck_cards_quantity_positive"),
        sa.UniqueConstraint("deck_id", "card_id", "board", name="uq_deck_cards_deck_card_board"),
    )
    op.create_index("ix_deck_cards_deck_id", "deck_cards", ["deck_id"])
    op.create_index("ix_deck_cards_card_id", "deck_cards", ["card_id"])

    # Collection & wishlist ------------------------------------------------
    op.create_table(
        "collection_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", name="fk_collection_items_user_id_users", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "card_id",
            sa.Integer(),
            sa.ForeignKey("cards.id", name="fk_collection_items_card_id_cards", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("foil_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("condition", sa.String(length=24), nullable=False, server_default="near_mint"),
        sa.Column("purchase_price", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("quantity >= 0", name="ck_collection_items_quantity_nonneg"),
        sa.CheckConstraint("foil_quantity >= 0", name="ck_collection_items_foil_nonneg"),
        sa.UniqueConstraint("user_id", "card_id", "condition", name="uq_collection_items_user_card_condition"),
    )
    op.create_index("ix_collection_items_user_id", "collection_items", ["user_id"])
    op.create_index("ix_collection_items_card_id", "collection_items", ["card_id"])

    op.create_table(
        "wishlist_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", name="fk_wishlist_items_user_id_users", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "card_id",
            sa.Integer(),
            sa.ForeignKey("cards.id", name="fk_wishlist_items_card_id_cards", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("priority", sa.String(length=8), nullable=False, server_default="medium"),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("target_price_usd", sa.Float(), nullable=True),
        sa.Column("alert_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("alert_type", sa.String(length=8), nullable=False, server_default="below"),
        sa.Column("last_notified_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_wishlist_items_user_id", "wishlist_items", ["user_id"])
    op.create_index("ix_wishlist_items_card_id", "wishlist_items", ["card_id"])
    op.create_index("ix_wishlist_items_name", "wishlist_items", ["name"])
    op.create_index("ix_wishlist_items_created_at", "wishlist_items", ["created_at"])

    # Price history --------------------------------------------------------
    op.create_table(
        "card_price_snapshots",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "card_id",
            sa.Integer(),
            sa.ForeignKey("cards.id", name="fk_card_price_snapshots_card_id_cards", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("oracle_id", sa.String(length=36), nullable=True),
        sa.Column("card_name", sa.String(length=255), nullable=False),
        sa.Column("snapshot_date", sa.Date(), nullable=False),
        sa.Column("price_usd", sa.Float(), nullable=True),
        sa.Column("price_usd_foil", sa.Float(), nullable=True),
        sa.Column("price_eur", sa.Float(), nullable=True),
        sa.Column("price_eur_foil", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("card_id", "snapshot_date", name="uq_card_price_snapshots_card_date"),
    )
    op.create_index("ix_card_price_snapshots_card_id", "card_price_snapshots", ["card_id"])
    op.create_index("ix_card_price_snapshots_oracle_id", "card_price_snapshots", ["oracle_id"])
    op.create_index("ix_card_price_snapshots_snapshot_date", "card_price_snapshots", ["snapshot_date"])

    op.create_table(
        "collection_value_snapshots",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", name="fk_collection_value_snapshots_user_id_users", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("snapshot_date", sa.Date(), nullable=False),
        sa.Column("total_value_usd", sa.Float(), nullable=False, server_default="0"),
        sa.Column("card_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unique_card_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "snapshot_date", name="uq_collection_value_snapshots_user_date"),
    )
    op.create_index("ix_collection_value_snapshots_user_id", "collection_value_snapshots", ["user_id"])
    op.create_index("ix_collection_value_snapshots_snapshot_date", "collection_value_snapshots", ["snapshot_date"])

    # Notifications --------------------------------------------------------
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", name="fk_notifications_user_id_users", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(length=32), nullable=False, server_default="price_alert"),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("action_url", sa.String(length=512), nullable=True),
        sa.Column("read_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])


def downgrade() -> None:
    for table in (
        "notifications",
        "collection_value_snapshots",
        "card_price_snapshots",
        "wishlist_items",
        "collection_items",
        "deck_cards",
        "decks",
        "cards",
        "audit_logs",
        "users",
    ):
        op.drop_table(table)
