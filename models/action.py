from extensions import db
from models.record import RecordMixin

# Actions proposées par défaut lors de la création en masse
STANDARD_ACTIONS = [
    {'id': 'create', 'label': 'Create'},
    {'id': 'list', 'label': 'List'},
    {'id': 'view', 'label': 'View'},
    {'id': 'update', 'label': 'Update'},
    {'id': 'delete', 'label': 'Delete'},
]


class Action(RecordMixin, db.Model):
    __tablename__ = "perm_actions"

    name = db.Column(db.String(100), nullable=False)
    resource_id = db.Column(db.String(32), db.ForeignKey("perm_resources.id"), nullable=False)

    resource = db.relationship("Resource", back_populates="actions")

    __table_args__ = (
        db.Index('idx_perm_actions_resource_id', 'resource_id'),
    )

    def __repr__(self):
        return f"<Action {self.name} on {self.resource_id}>"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'resource_id': self.resource_id,
            **self._timestamps(),
        }
