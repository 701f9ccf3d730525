"""analysis_runs_and_audit_chain

Creates the analyzer's persisted tables:
  - analysis_runs          — one row per extraction run (status, progress, summary)
  - operation_audit_chain  — append-only hash chain of tier >= 2 operations

Tables created conditionally (IF NOT EXISTS semantics) to support idempotent
execution against databases that already received these tables via db.create_all()
in a development environment.

Revision ID: a1f3c9e2b7d4
Revises:
Create Date: 2026-10-18 09:12:41.118204
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = 'a1f3c9e2b7d4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing = set(inspector.get_table_names())

    # ── Analysis runs ─────────────────────────────────────────────────────
    if "analysis_runs" not in existing:
        op.create_table(
            "analysis_runs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("run_id", sa.String(length=36), nullable=False),
            sa.Column("mode", sa.String(length=10), nullable=False, server_default="mock"),
            sa.Column("status", sa.String(length=24), nullable=False, server_default="pending"),
            sa.Column("exit_code", sa.Integer(), nullable=True),
            sa.Column("filters_json", sa.Text(), nullable=True,
                      comment="JSON: {module, category, extractorIds}"),
            sa.Column("concurrency", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("user", sa.String(length=100), nullable=True),
            sa.Column("completed_count", sa.Integer(), nullable=True),
            sa.Column("total_count", sa.Integer(), nullable=True),
            sa.Column("current", sa.String(length=255), nullable=True),
            sa.Column("summary_json", sa.Text(), nullable=True),
            sa.Column("error_message", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("started_at", sa.DateTime(), nullable=True),
            sa.Column("completed_at", sa.DateTime(), nullable=True),
            sa.CheckConstraint(
                "status IN ('pending','running','completed','completed_with_gaps',"
                "'partial','cancelled','failed')",
                name="ck_analysis_run_status",
            ),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_analysis_runs_run_id", "analysis_runs", ["run_id"], unique=True)

    # ── Operation audit chain ─────────────────────────────────────────────
    if "operation_audit_chain" not in existing:
        op.create_table(
            "operation_audit_chain",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("sequence", sa.Integer(), nullable=False),
            sa.Column("operation", sa.String(length=80), nullable=False,
                      comment="extraction.run | migration.load_staging | …"),
            sa.Column("tier", sa.Integer(), nullable=False),
            sa.Column("user", sa.String(length=150), nullable=False, server_default="system"),
            sa.Column("status", sa.String(length=20), nullable=False,
                      comment="success | failed | denied"),
            sa.Column("details_json", sa.Text(), nullable=True),
            sa.Column("result_json", sa.Text(), nullable=True),
            sa.Column("approval_id", sa.String(length=36), nullable=True),
            sa.Column("timestamp", sa.String(length=40), nullable=False),
            sa.Column("prev_hash", sa.String(length=64), nullable=False, server_default=""),
            sa.Column("entry_hash", sa.String(length=64), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("sequence"),
            sa.UniqueConstraint("entry_hash"),
        )
        op.create_index("idx_opaudit_operation", "operation_audit_chain", ["operation"])
        op.create_index("idx_opaudit_user", "operation_audit_chain", ["user"])
        op.create_index("idx_opaudit_tier", "operation_audit_chain", ["tier"])


def downgrade():
    op.drop_table("operation_audit_chain")
    op.drop_table("analysis_runs")
