import uuid
from datetime import datetime, timezone
from extensions import db


def new_record_id():
    return uuid.uuid4().hex


def utc_now():
    return datetime.now(timezone.utc)


class RecordMixin:
    """Champs système communs à toutes les collections (id, created, updated)"""

    id = db.Column(db.String(32), primary_key=True, default=new_record_id)
    created = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    def _timestamps(self):
        return {
            'created': self.created.isoformat() if self.created else None,
            'updated': self.updated.isoformat() if self.updated else None,
        }
