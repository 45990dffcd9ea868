# --- orderdesk/model/user.py ---
import enum
from sqlalchemy.sql import func
from ..extensions import db

class Role(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    STAFF = "STAFF"
    BRANCH_MANAGER = "BRANCH_MANAGER"
    ADMIN = "ADMIN"

ROLE_LEVEL = {
    Role.CUSTOMER: 1,
    Role.STAFF: 2,
    Role.BRANCH_MANAGER: 3,
    Role.ADMIN: 4,
}

class User(db.Model):
    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(180), nullable=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    phone = db.Column(db.String(50), nullable=True)
    password_hash = db.Column(db.String(255), nullable=False, default="")
    role = db.Column(db.String(32), nullable=False, default=Role.CUSTOMER.value, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # staff and branch managers work for one branch
    branch_id = db.Column(db.Integer, db.ForeignKey("branch.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime, server_default=func.now())

    @property
    def role_enum(self) -> Role:
        try:
            return Role(self.role)
        except ValueError:
            return Role.CUSTOMER

    def as_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "phone": self.phone,
            "role": self.role,
            "is_active": self.is_active,
            "branch_id": self.branch_id,
            }

class RefreshToken(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    token = db.Column(db.String(64), unique=True, nullable=False, index=True)
    expires_at = db.Column(db.DateTime, nullable=False)
