from extensions import db
from models.record import RecordMixin


class Role(RecordMixin, db.Model):
    __tablename__ = "perm_roles"

    name = db.Column(db.String(100), nullable=False)

    def __repr__(self):
        return f"<Role {self.name}>"

    def to_dict(self):
        return {'id': self.id, 'name': self.name, **self._timestamps()}
