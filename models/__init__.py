from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# Import all models to ensure they are registered with SQLAlchemy
from models.department import Department
from models.employee import Employee
from models.payroll_period import PayrollPeriod
from models.salary_component import SalaryComponent
from models.payroll_transaction import PayrollTransaction
from models.user import User
