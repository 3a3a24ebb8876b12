from extensions import db
from models.record import RecordMixin


class ConditionCode(RecordMixin, db.Model):
    __tablename__ = "perm_condition_codes"

    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    expression = db.Column(db.Text, nullable=False, default="")

    def __repr__(self):
        return f"<ConditionCode {self.name}>"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'expression': self.expression,
            **self._timestamps(),
        }
