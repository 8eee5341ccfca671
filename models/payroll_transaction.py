from models import db
from sqlalchemy.sql import func

class PayrollTransaction(db.Model):
    __tablename__ = "payroll_transactions"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    period_id = db.Column(db.Integer, db.ForeignKey("payroll_periods.id"), nullable=False, index=True)
    component_id = db.Column(db.Integer, db.ForeignKey("salary_components.id"), nullable=False)

    # Deductions are recorded as negative amounts
    amount = db.Column(db.Numeric(12, 2), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    # Relationships
    employee = db.relationship("Employee", backref="payroll_transactions")
    period = db.relationship("PayrollPeriod", backref="transactions")
    component = db.relationship("SalaryComponent")

    def __repr__(self):
        return f"<PayrollTransaction(employee_id={self.employee_id}, period_id={self.period_id}, amount={self.amount})>"
