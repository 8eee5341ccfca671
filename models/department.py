from models import db
from sqlalchemy.sql import func

class Department(db.Model):
    __tablename__ = "departments"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    status = db.Column(db.String(20), db.CheckConstraint("status IN ('active', 'inactive')"), default='active')

    # Audit fields
    created_date = db.Column(db.Date, server_default=func.current_date())
    created_by = db.Column(db.String(100))

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'status': self.status
        }

    def __repr__(self):
        return f"<Department {self.id} - {self.name}>"
