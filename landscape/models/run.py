"""
ERP Landscape Analyzer
Analysis run model.

Models:
    - AnalysisRun: one row per extraction run, updated as the background
      worker progresses. Full results stay in the in-process run registry;
      the row carries the summary needed to answer status queries after a
      restart.
"""

import json
from datetime import datetime, timezone

from landscape.models import db

RUN_STATUSES = (
    "pending",
    "running",
    "completed",
    "completed_with_gaps",
    "partial",
    "cancelled",
    "failed",
)

TERMINAL_STATUSES = frozenset(RUN_STATUSES) - {"pending", "running"}


class AnalysisRun(db.Model):
    """Extraction/assessment run tracking with progress."""

    __tablename__ = "analysis_runs"

    id = db.Column(db.Integer, primary_key=True)
    run_id = db.Column(db.String(36), nullable=False, unique=True, index=True)
    mode = db.Column(db.String(10), nullable=False, default="mock")
    status = db.Column(db.String(24), nullable=False, default="pending")
    exit_code = db.Column(db.Integer, nullable=True)

    # Input
    filters_json = db.Column(db.Text, nullable=True,
                             comment="JSON: {module, category, extractorIds}")
    concurrency = db.Column(db.Integer, nullable=False, default=1)
    user = db.Column(db.String(100), nullable=True)

    # Progress
    completed_count = db.Column(db.Integer, default=0)
    total_count = db.Column(db.Integer, default=0)
    current = db.Column(db.String(255), nullable=True)

    # Output
    summary_json = db.Column(db.Text, nullable=True)
    error_message = db.Column(db.Text, nullable=True)

    # Timing
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    started_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('pending','running','completed','completed_with_gaps',"
            "'partial','cancelled','failed')",
            name="ck_analysis_run_status",
        ),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self):
        return {
            "id": self.id,
            "runId": self.run_id,
            "mode": self.mode,
            "status": self.status,
            "exitCode": self.exit_code,
            "filters": json.loads(self.filters_json) if self.filters_json else {},
            "concurrency": self.concurrency,
            "user": self.user,
            "completed": self.completed_count or 0,
            "total": self.total_count or 0,
            "current": self.current,
            "summary": json.loads(self.summary_json) if self.summary_json else None,
            "error": self.error_message,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }

    def __repr__(self):
        return f"<AnalysisRun run_id={self.run_id} status={self.status}>"
