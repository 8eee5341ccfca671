from models import db

class SalaryComponent(db.Model):
    __tablename__ = "salary_components"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(20), unique=True, nullable=False)
    name = db.Column(db.String(100), nullable=False)
    type = db.Column(db.String(20), db.CheckConstraint("type IN ('earning', 'deduction')"), nullable=False)

    # Earnings flagged here make up the ESI wage base
    is_esi_applicable = db.Column(db.Boolean, default=False)

    def __repr__(self):
        return f"<SalaryComponent {self.code} ({self.type})>"
