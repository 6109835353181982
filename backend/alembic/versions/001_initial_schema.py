"""Initial schema: members, wallet, courts, bookings, tournaments, matches, notifications

Revision ID: 001_initial
Revises:
Create Date: 2026-02-01 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "member",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("joined_at", sa.DateTime(), nullable=False),
        sa.Column("rank_level", sa.Float(), nullable=False),
        sa.Column("wallet_balance", sa.Numeric(18, 2), nullable=False),
        sa.Column("total_spent", sa.Numeric(18, 2), nullable=False),
        sa.Column("tier", sa.String(), nullable=False),
        sa.Column("avatar_url", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_member_user_id", "member", ["user_id"], unique=True)

    op.create_table(
        "wallet_transaction",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("member_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("related_id", sa.String(length=100), nullable=True),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("proof_image_url", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["member_id"], ["member.id"]),
    )
    op.create_index("ix_wallet_transaction_member_id", "wallet_transaction", ["member_id"])
    op.create_index("ix_wallet_transaction_status", "wallet_transaction", ["status"])

    op.create_table(
        "court",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("price_per_hour", sa.Numeric(18, 2), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "booking",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("court_id", sa.Integer(), nullable=False),
        sa.Column("member_id", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("total_price", sa.Numeric(18, 2), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("transaction_id", sa.Integer(), nullable=True),
        sa.Column("is_recurring", sa.Boolean(), nullable=False),
        sa.Column("recurrence_rule", sa.String(length=200), nullable=True),
        sa.Column("parent_booking_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["court_id"], ["court.id"]),
        sa.ForeignKeyConstraint(["member_id"], ["member.id"]),
        sa.ForeignKeyConstraint(["transaction_id"], ["wallet_transaction.id"]),
        sa.ForeignKeyConstraint(["parent_booking_id"], ["booking.id"]),
        sa.CheckConstraint("start_time < end_time", name="ck_booking_time_range"),
    )
    op.create_index("ix_booking_member_id", "booking", ["member_id"])
    op.create_index("ix_booking_status", "booking", ["status"])
    op.create_index("ix_booking_court_range", "booking", ["court_id", "start_time", "end_time"])

    op.create_table(
        "tournament",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("format", sa.String(), nullable=False),
        sa.Column("entry_fee", sa.Numeric(18, 2), nullable=False),
        sa.Column("prize_pool", sa.Numeric(18, 2), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("settings", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "tournament_participant",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("member_id", sa.Integer(), nullable=False),
        sa.Column("team_name", sa.String(length=100), nullable=True),
        sa.Column("partner_id", sa.Integer(), nullable=True),
        sa.Column("seed", sa.Integer(), nullable=True),
        sa.Column("payment_status", sa.Boolean(), nullable=False),
        sa.Column("registered_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["member_id"], ["member.id"]),
        sa.ForeignKeyConstraint(["partner_id"], ["member.id"]),
        sa.UniqueConstraint("tournament_id", "member_id", name="uq_tournament_member"),
    )
    op.create_index("ix_tournament_participant_tournament_id", "tournament_participant", ["tournament_id"])

    op.create_table(
        "match",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=True),
        sa.Column("round_name", sa.String(length=100), nullable=True),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("court_id", sa.Integer(), nullable=True),
        sa.Column("team1_player1_id", sa.Integer(), nullable=True),
        sa.Column("team1_player2_id", sa.Integer(), nullable=True),
        sa.Column("team2_player1_id", sa.Integer(), nullable=True),
        sa.Column("team2_player2_id", sa.Integer(), nullable=True),
        sa.Column("score1", sa.Integer(), nullable=False),
        sa.Column("score2", sa.Integer(), nullable=False),
        sa.Column("details", sa.String(length=500), nullable=True),
        sa.Column("winning_side", sa.String(), nullable=True),
        sa.Column("is_ranked", sa.Boolean(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["court_id"], ["court.id"]),
        sa.ForeignKeyConstraint(["team1_player1_id"], ["member.id"]),
        sa.ForeignKeyConstraint(["team1_player2_id"], ["member.id"]),
        sa.ForeignKeyConstraint(["team2_player1_id"], ["member.id"]),
        sa.ForeignKeyConstraint(["team2_player2_id"], ["member.id"]),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_match_tournament_id", "match", ["tournament_id"])

    op.create_table(
        "notification",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("receiver_id", sa.Integer(), nullable=False),
        sa.Column("message", sa.String(length=500), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("link_url", sa.String(length=200), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["receiver_id"], ["member.id"]),
    )
    op.create_index("ix_notification_receiver_id", "notification", ["receiver_id"])


def downgrade() -> None:
    op.drop_table("notification")
    op.drop_table("match")
    op.drop_table("tournament_participant")
    op.drop_table("tournament")
    op.drop_table("booking")
    op.drop_table("court")
    op.drop_table("wallet_transaction")
    op.drop_table("member")
