from extensions import db
from models.record import RecordMixin


class Resource(RecordMixin, db.Model):
    __tablename__ = "perm_resources"

    name = db.Column(db.String(100), nullable=False)

    actions = db.relationship("Action", back_populates="resource", lazy=True)

    def __repr__(self):
        return f"<Resource {self.name}>"

    def to_dict(self):
        return {'id': self.id, 'name': self.name, **self._timestamps()}
