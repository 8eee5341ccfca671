from models import db
from sqlalchemy.sql import func

class PayrollPeriod(db.Model):
    __tablename__ = "payroll_periods"

    id = db.Column(db.Integer, primary_key=True)
    period_name = db.Column(db.String(50), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    financial_year = db.Column(db.String(9), nullable=False, index=True)  # e.g. 2024-2025

    # Finalized periods are owned by payroll processing and never change
    is_finalized = db.Column(db.Boolean, default=False)

    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    def to_dict(self):
        return {
            'id': self.id,
            'period_name': self.period_name,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'end_date': self.end_date.isoformat() if self.end_date else None,
            'financial_year': self.financial_year,
            'is_finalized': self.is_finalized
        }

    def __repr__(self):
        return f"<PayrollPeriod {self.id} - {self.period_name} ({self.financial_year})>"
