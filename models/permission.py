from extensions import db
from models.record import RecordMixin


class Permission(RecordMixin, db.Model):
    __tablename__ = "perm_permissions"

    role_id = db.Column(db.String(32), db.ForeignKey("perm_roles.id"), nullable=False)
    resource_id = db.Column(db.String(32), db.ForeignKey("perm_resources.id"), nullable=False)
    action_id = db.Column(db.String(32), db.ForeignKey("perm_actions.id"), nullable=False)
    has_permission = db.Column(db.Boolean, default=False)
    has_condition = db.Column(db.Boolean, default=False)
    # Pas de clé étrangère : une référence orpheline est un état valide
    condition_code_id = db.Column(db.String(32), nullable=True)

    __table_args__ = (
        db.UniqueConstraint('role_id', 'resource_id', 'action_id', name='uq_perm_permissions_triple'),
        db.Index('idx_perm_permissions_role_id', 'role_id'),
        db.Index('idx_perm_permissions_action_id', 'action_id'),
    )

    def __repr__(self):
        return f"<Permission {self.role_id} -> {self.resource_id}:{self.action_id}>"

    def to_dict(self):
        return {
            'id': self.id,
            'role_id': self.role_id,
            'resource_id': self.resource_id,
            'action_id': self.action_id,
            'has_permission': bool(self.has_permission),
            'has_condition': bool(self.has_condition),
            'condition_code_id': self.condition_code_id or None,
            **self._timestamps(),
        }
