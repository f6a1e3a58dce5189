from __future__ import annotations

from datetime import datetime

from extensions import db


class SyncStatus(db.Model):
    """Progress of a long-running catalog job, one row per job key."""

    __tablename__ = "sync_status"

    STATUS_RUNNING = "running"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"

    id = db.Column(db.String(64), primary_key=True)
    status = db.Column(db.String(16), nullable=False, default=STATUS_RUNNING)
    last_sync = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    error_message = db.Column(db.Text, nullable=True)
    records_processed = db.Column(db.Integer, nullable=False, default=0)
    total_records = db.Column(db.Integer, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status,
            "last_sync": self.last_sync.isoformat() if self.last_sync else None,
            "error_message": self.error_message,
            "records_processed": self.records_processed,
            "total_records": self.total_records,
        }

    def __repr__(self) -> str:
        return f"<SyncStatus {self.id} {self.status} {self.records_processed}/{self.total_records}>"
