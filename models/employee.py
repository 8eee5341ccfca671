from models import db
from sqlalchemy.sql import func

class Employee(db.Model):
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)
    emp_code = db.Column(db.String(50), unique=True, nullable=False, index=True)

    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)

    # Statutory registration number with the ESI corporation
    esi_number = db.Column(db.String(20))

    department_id = db.Column(db.Integer, db.ForeignKey("departments.id"), index=True)
    status = db.Column(db.String(20), db.CheckConstraint("status IN ('active', 'inactive')"), default='active')

    # Audit fields
    created_date = db.Column(db.Date, server_default=func.current_date())
    created_by = db.Column(db.String(100))
    updated_date = db.Column(db.Date, onupdate=func.current_date())
    updated_by = db.Column(db.String(100))

    # Relationships
    department = db.relationship("Department", backref="employees")

    def __repr__(self):
        return f"<Employee {self.emp_code} - {self.first_name} {self.last_name}>"
