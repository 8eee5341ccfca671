from models import db
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash
import json
import uuid

# Named permissions checked by the ESI endpoints; "all" grants every one
PERMISSIONS = ("payroll", "reports", "settings")


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(50), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Authentication fields
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)

    # User details
    name = db.Column(db.String(200), nullable=False)
    role = db.Column(db.String(20),
                     db.CheckConstraint("role IN ('admin', 'hr', 'manager', 'employee')"),
                     nullable=False, default='employee')

    # Status and permissions
    is_active = db.Column(db.Boolean, default=True)
    permissions = db.Column(db.Text)  # JSON string of permissions

    # Login tracking
    last_login = db.Column(db.DateTime)
    login_attempts = db.Column(db.Integer, default=0)
    locked_until = db.Column(db.DateTime)

    # Audit fields
    created_date = db.Column(db.DateTime, server_default=func.now())
    created_by = db.Column(db.String(100))

    def set_password(self, password):
        """Set password hash"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check password against hash"""
        return check_password_hash(self.password_hash, password)

    def get_permissions(self):
        """Get user permissions as list"""
        if not self.permissions:
            return []
        try:
            return json.loads(self.permissions)
        except ValueError:
            return []

    def set_permissions(self, permissions_list):
        """Set user permissions from list"""
        self.permissions = json.dumps(permissions_list)

    def has_permission(self, permission):
        permissions = self.get_permissions()
        return "all" in permissions or permission in permissions

    def to_dict(self):
        """Convert user to dictionary for API responses"""
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'role': self.role,
            'is_active': self.is_active,
            'permissions': self.get_permissions(),
            'last_login': self.last_login.isoformat() if self.last_login else None,
            'created_date': self.created_date.isoformat() if self.created_date else None
        }

    def __repr__(self):
        return f"<User {self.email} - {self.role}>"
