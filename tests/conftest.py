"""
Test configuration and fixtures
"""

import os
from datetime import date

os.environ.setdefault("CREATE_APP_ON_IMPORT", "0")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest

from app import create_app
from models import db
from models.department import Department
from models.employee import Employee
from models.payroll_period import PayrollPeriod
from models.salary_component import SalaryComponent
from models.payroll_transaction import PayrollTransaction
from models.user import User
from routes.auth import generate_token
from services.settings_store import InMemorySettingsStore


@pytest.fixture
def settings_store():
    return InMemorySettingsStore()


@pytest.fixture
def app(settings_store):
    app = create_app(test_config={
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "SECRET_KEY": "test-secret",
        "ESI_SETTINGS_STORE": settings_store,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _make_user(email, permissions, is_active=True):
    user = User(email=email, name=email.split("@")[0], role="hr", is_active=is_active, created_by="test")
    user.set_password("secret123")
    user.set_permissions(permissions)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def admin_user(app):
    return _make_user("admin@company.com", ["all"])


@pytest.fixture
def payroll_user(app):
    return _make_user("payroll@company.com", ["payroll"])


def auth_headers(user):
    return {"Authorization": f"Bearer {generate_token(user)}"}


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def seed_data(app):
    """
    Two departments, three periods across two financial years and four
    employees (one inactive, one without a department).

    ESI deductions:
        E001 (Engineering): Mar-2024 75.00, Apr-2024 90.00, May-2024 75.00
        E002 (Operations):  Apr-2024 60.00
        E003 (Engineering, inactive): Apr-2024 67.50
    """
    engineering = Department(name="Engineering", status="active")
    operations = Department(name="Operations", status="active")
    archived = Department(name="Archived", status="inactive")
    db.session.add_all([engineering, operations, archived])

    march = PayrollPeriod(period_name="Mar-2024", start_date=date(2024, 3, 1), end_date=date(2024, 3, 31),
                          financial_year="2023-2024", is_finalized=True)
    april = PayrollPeriod(period_name="Apr-2024", start_date=date(2024, 4, 1), end_date=date(2024, 4, 30),
                          financial_year="2024-2025", is_finalized=True)
    may = PayrollPeriod(period_name="May-2024", start_date=date(2024, 5, 1), end_date=date(2024, 5, 31),
                        financial_year="2024-2025")
    db.session.add_all([march, april, may])

    basic = SalaryComponent(code="BASIC", name="Basic", type="earning", is_esi_applicable=True)
    hra = SalaryComponent(code="HRA", name="HRA", type="earning", is_esi_applicable=True)
    bonus = SalaryComponent(code="BONUS", name="Bonus", type="earning", is_esi_applicable=False)
    esi = SalaryComponent(code="ESI", name="ESI", type="deduction", is_esi_applicable=False)
    db.session.add_all([basic, hra, bonus, esi])
    db.session.flush()

    e1 = Employee(emp_code="E001", first_name="Asha", last_name="Rao", esi_number="3100000001",
                  department_id=engineering.id, status="active")
    e2 = Employee(emp_code="E002", first_name="Vikram", last_name="Singh", esi_number="3100000002",
                  department_id=operations.id, status="active")
    e3 = Employee(emp_code="E003", first_name="Meera", last_name="Iyer", esi_number="3100000003",
                  department_id=engineering.id, status="inactive")
    e4 = Employee(emp_code="E004", first_name="Ravi", last_name="Kumar", status="active")
    db.session.add_all([e1, e2, e3, e4])
    db.session.flush()

    def txn(employee, period, component, amount):
        db.session.add(PayrollTransaction(employee_id=employee.id, period_id=period.id,
                                          component_id=component.id, amount=amount))

    txn(e1, march, basic, 10000)
    txn(e1, march, esi, -75)

    txn(e1, april, basic, 10000)
    txn(e1, april, hra, 2000)
    txn(e1, april, bonus, 5000)
    txn(e1, april, esi, -90)

    txn(e1, may, basic, 10000)
    txn(e1, may, esi, -75)

    txn(e2, april, basic, 8000)
    txn(e2, april, esi, -60)

    txn(e3, april, basic, 9000)
    txn(e3, april, esi, -67.5)

    # E004 has earnings but no ESI deduction
    txn(e4, april, basic, 30000)

    db.session.commit()

    return {
        "departments": {"engineering": engineering.id, "operations": operations.id, "archived": archived.id},
        "periods": {"march": march.id, "april": april.id, "may": may.id},
    }
