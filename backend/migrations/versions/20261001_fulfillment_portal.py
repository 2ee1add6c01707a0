"""Create fulfillment portal schema

Revision ID: 20261001_fulfillment_portal
Revises:
Create Date: 2026-10-01
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261001_fulfillment_portal"
down_revision = None
branch_labels = None
depends_on = None


def _actor(prefix):
    return [
        sa.Column(f"{prefix}_id", sa.Integer(), nullable=True),
        sa.Column(f"{prefix}_name", sa.String(255), nullable=True),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("identity_id", sa.String(128), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(128), nullable=True),
        sa.Column("last_name", sa.String(128), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("is_employee", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("employee_role", sa.String(16), nullable=True),
        sa.Column("employee_status", sa.String(16), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("identity_id", name="uq_users_identity_id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.create_index("ix_users_email", ["email"], unique=False)
        batch_op.create_index(
            "ix_users_employee_role_status",
            ["is_employee", "employee_role", "employee_status"],
            unique=False,
        )

    op.create_table(
        "addresses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("street", sa.String(255), nullable=False),
        sa.Column("city", sa.String(128), nullable=False),
        sa.Column("state", sa.String(128), nullable=False),
        sa.Column("postal_code", sa.String(32), nullable=False),
        sa.Column("country", sa.String(64), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("addresses", schema=None) as batch_op:
        batch_op.create_index("ix_addresses_user_id", ["user_id"], unique=False)
        batch_op.create_index("ix_addresses_email", ["email"], unique=False)

    op.create_table(
        "reviews",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("product_ref", sa.String(128), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("reviews", schema=None) as batch_op:
        batch_op.create_index("ix_reviews_user_id", ["user_id"], unique=False)

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_number", sa.String(64), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("customer_identity_id", sa.String(128), nullable=True),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=False),
        sa.Column("customer_phone", sa.String(32), nullable=True),
        sa.Column("address_id", sa.Integer(), nullable=True),
        sa.Column("shipping_name", sa.String(255), nullable=True),
        sa.Column("shipping_street", sa.String(255), nullable=False),
        sa.Column("shipping_city", sa.String(128), nullable=False),
        sa.Column("shipping_state", sa.String(128), nullable=False),
        sa.Column("shipping_postal_code", sa.String(32), nullable=False),
        sa.Column("shipping_country", sa.String(64), nullable=False),
        sa.Column("shipping_phone", sa.String(32), nullable=True),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("total_price_cents", sa.Integer(), nullable=False),
        sa.Column("payment_method", sa.String(32), nullable=False, server_default="cash_on_delivery"),
        sa.Column("status", sa.String(32), nullable=False, server_default="pending"),
        *_actor("address_confirmed_by"),
        sa.Column("address_confirmed_at", sa.DateTime(timezone=True), nullable=True),
        *_actor("order_confirmed_by"),
        sa.Column("order_confirmed_at", sa.DateTime(timezone=True), nullable=True),
        *_actor("packed_by"),
        sa.Column("packed_at", sa.DateTime(timezone=True), nullable=True),
        *_actor("dispatched_by"),
        sa.Column("dispatched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        *_actor("assigned_deliveryman"),
        sa.Column("delivery_attempts", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("rescheduled_date", sa.Date(), nullable=True),
        sa.Column("delivery_notes", sa.Text(), nullable=True),
        sa.Column("cash_collected", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("cash_collected_amount_cents", sa.Integer(), nullable=True),
        sa.Column("cash_collected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cash_submitted_to_accounts", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        *_actor("cash_submitted_by"),
        sa.Column("cash_submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cash_submission_notes", sa.Text(), nullable=True),
        sa.Column("cash_submission_status", sa.String(16), nullable=False, server_default="not_submitted"),
        sa.Column("cash_submission_rejection_reason", sa.Text(), nullable=True),
        *_actor("assigned_accounts_employee"),
        *_actor("payment_received_by"),
        sa.Column("payment_received_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("stripe_payment_intent_id", sa.String(128), nullable=True),
        sa.Column("payment_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.ForeignKeyConstraint(["customer_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["address_id"], ["addresses.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_number", name="uq_orders_order_number"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("orders", schema=None) as batch_op:
        batch_op.create_index("ix_orders_customer_id", ["customer_id"], unique=False)
        batch_op.create_index("ix_orders_customer_identity", ["customer_identity_id"], unique=False)
        batch_op.create_index("ix_orders_address_id", ["address_id"], unique=False)
        batch_op.create_index("ix_orders_status", ["status"], unique=False)
        batch_op.create_index("ix_orders_status_created", ["status", "created_at"], unique=False)
        batch_op.create_index("ix_orders_assigned_deliveryman_id", ["assigned_deliveryman_id"], unique=False)
        batch_op.create_index("ix_orders_cash_submission_status", ["cash_submission_status"], unique=False)
        batch_op.create_index("ix_orders_assigned_accounts_employee_id", ["assigned_accounts_employee_id"], unique=False)
        batch_op.create_index("ix_orders_payment_status", ["payment_status"], unique=False)

    op.create_table(
        "order_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("product_ref", sa.String(128), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price_cents", sa.Integer(), nullable=False),
        sa.Column("line_total_cents", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("order_lines", schema=None) as batch_op:
        batch_op.create_index("ix_order_lines_order_id", ["order_id"], unique=False)

    op.create_table(
        "order_status_history",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("changed_by_id", sa.Integer(), nullable=True),
        sa.Column("changed_by_name", sa.String(255), nullable=True),
        sa.Column("changed_by_role", sa.String(16), nullable=False),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_id", "sequence", name="uq_order_status_history_seq"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("order_status_history", schema=None) as batch_op:
        batch_op.create_index("ix_order_status_history_order_id", ["order_id"], unique=False)

    op.create_table(
        "user_addresses",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("address_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["address_id"], ["addresses.id"]),
        sa.PrimaryKeyConstraint("user_id", "address_id"),
    )
    op.create_table(
        "user_orders",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.PrimaryKeyConstraint("user_id", "order_id"),
    )
    op.create_table(
        "wishlist_items",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("product_ref", sa.String(128), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("user_id", "product_ref"),
    )
    op.create_table(
        "cart_items",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("product_ref", sa.String(128), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("user_id", "product_ref"),
    )


def downgrade():
    op.drop_table("cart_items")
    op.drop_table("wishlist_items")
    op.drop_table("user_orders")
    op.drop_table("user_addresses")
    op.drop_table("order_status_history")
    op.drop_table("order_lines")
    op.drop_table("orders")
    op.drop_table("reviews")
    op.drop_table("addresses")
    op.drop_table("users")
