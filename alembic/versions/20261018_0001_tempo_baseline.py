"""tempo baseline schema"""

from alembic import op
import sqlalchemy as sa


revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tempo_sessions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("student_id", sa.String(length=36), nullable=False),
        sa.Column("coach_id", sa.String(length=36), nullable=False),
        sa.Column("mode", sa.String(length=16), nullable=False),
        sa.Column("title", sa.String(length=140), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("club", sa.String(length=120), nullable=True),
        sa.Column("next_order_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.CheckConstraint("mode in ('notes', 'decision')", name="ck_tempo_sessions_mode"),
        sa.CheckConstraint("status in ('active', 'archived')", name="ck_tempo_sessions_status"),
        sa.CheckConstraint("next_order_index >= 0", name="ck_tempo_sessions_next_order_index"),
    )
    op.create_index("ix_tempo_sessions_student_id", "tempo_sessions", ["student_id"])
    op.create_index("ix_tempo_sessions_coach_id", "tempo_sessions", ["coach_id"])
    op.create_index("ix_tempo_sessions_student_updated", "tempo_sessions", ["student_id", "updated_at"])

    op.create_table(
        "tempo_current_sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.String(length=36), nullable=False),
        sa.Column("coach_id", sa.String(length=36), nullable=False),
        sa.Column("mode", sa.String(length=16), nullable=False),
        sa.Column("session_id", sa.String(length=36), sa.ForeignKey("tempo_sessions.id"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.UniqueConstraint("student_id", "coach_id", "mode", name="uq_tempo_current_session"),
    )

    op.create_table(
        "tempo_note_cards",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("session_id", sa.String(length=36), sa.ForeignKey("tempo_sessions.id"), nullable=False),
        sa.Column("coach_id", sa.String(length=36), nullable=False),
        sa.Column("card_type", sa.String(length=16), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("order_index", sa.Integer(), nullable=False),
        sa.Column("occurred_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.CheckConstraint(
            "card_type in ('constat', 'consigne', 'objectif', 'mesure', 'libre')",
            name="ck_tempo_note_cards_card_type",
        ),
        sa.CheckConstraint("order_index >= 0", name="ck_tempo_note_cards_order_index"),
    )
    op.create_index("ix_tempo_note_cards_session_id", "tempo_note_cards", ["session_id"])
    op.create_index(
        "ix_tempo_note_cards_session_order", "tempo_note_cards", ["session_id", "order_index", "occurred_at"]
    )

    op.create_table(
        "tempo_decision_runs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("session_id", sa.String(length=36), sa.ForeignKey("tempo_sessions.id"), nullable=False),
        sa.Column("coach_id", sa.String(length=36), nullable=False),
        sa.Column("club", sa.String(length=120), nullable=False),
        sa.Column("constat", sa.Text(), nullable=False),
        sa.Column("coach_intent", sa.Text(), nullable=True),
        sa.Column("clarifications_json", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("axes_json", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("context_snapshot_json", sa.JSON(), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_tempo_decision_runs_session_id", "tempo_decision_runs", ["session_id"])
    op.create_index(
        "ix_tempo_decision_runs_session_created", "tempo_decision_runs", ["session_id", "created_at"]
    )


def downgrade() -> None:
    for t in ["tempo_decision_runs", "tempo_note_cards", "tempo_current_sessions", "tempo_sessions"]:
        op.drop_table(t)
