#!/usr/bin/env python3
"""
Database initialization script for the ESI payroll service
"""

import os
import sys

from models import db
from models.department import Department
from models.salary_component import SalaryComponent
from models.user import User, PERMISSIONS

DEFAULT_COMPONENTS = [
    {"code": "BASIC", "name": "Basic Salary", "type": "earning", "is_esi_applicable": True},
    {"code": "DA", "name": "Dearness Allowance", "type": "earning", "is_esi_applicable": True},
    {"code": "HRA", "name": "House Rent Allowance", "type": "earning", "is_esi_applicable": True},
    {"code": "BONUS", "name": "Annual Bonus", "type": "earning", "is_esi_applicable": False},
    {"code": "ESI", "name": "Employee State Insurance", "type": "deduction", "is_esi_applicable": False},
]


def seed_reference_data(admin_email, admin_password):
    """Create salary components, a default department and an admin user if missing.

    Returns the number of rows added.
    """
    added = 0

    for component in DEFAULT_COMPONENTS:
        if not SalaryComponent.query.filter_by(code=component["code"]).first():
            db.session.add(SalaryComponent(**component))
            added += 1

    if not Department.query.first():
        db.session.add(Department(name="General", status="active", created_by="system"))
        added += 1

    if not User.query.filter_by(email=admin_email).first():
        admin = User(
            email=admin_email,
            name="Admin User",
            role="admin",
            created_by="system"
        )
        admin.set_password(admin_password)
        admin.set_permissions(["all"])
        db.session.add(admin)
        added += 1

    db.session.commit()
    return added


def init_database():
    """Initialize the database with all tables"""
    from app import create_app

    app = create_app(register_blueprints=False)

    with app.app_context():
        print("Creating database tables...")
        db.create_all()
        print("✅ Database tables created successfully!")

        added = seed_reference_data(
            os.getenv("ADMIN_EMAIL", "admin@company.com"),
            os.getenv("ADMIN_PASSWORD", "admin123"),
        )
        print(f"✅ Reference data seeded ({added} new rows)")
        print(f"Available permissions: {', '.join(PERMISSIONS)} (or 'all')")

        print("\n🎉 Database initialization completed successfully!")
        print("\nYou can now:")
        print("1. Log in using: POST http://127.0.0.1:5000/api/auth/login")
        print("2. View the ESI summary using: GET http://127.0.0.1:5000/api/esi/")


if __name__ == "__main__":
    os.environ.setdefault("CREATE_APP_ON_IMPORT", "0")
    try:
        init_database()
    except Exception as e:
        print(f"❌ Error initializing database: {e}")
        sys.exit(1)
