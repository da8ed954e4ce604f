from vetcare.extensions import db, bcrypt
from .base import TimestampMixin, generate_uuid, iso

ROLES = ('pet_owner', 'farmer', 'veterinarian', 'admin')
OWNER_ROLES = ('pet_owner', 'farmer')


class User(db.Model, TimestampMixin):
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    # Personal Information
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(20))

    # Role - one of: 'pet_owner', 'farmer', 'veterinarian', 'admin'
    role = db.Column(db.String(20), nullable=False, default='pet_owner', index=True)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    last_login = db.Column(db.DateTime, nullable=True)

    def set_password(self, password):
        """Hash and set password"""
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        """Check if provided password matches hash"""
        return bcrypt.check_password_hash(self.password_hash, password)

    def is_veterinarian(self):
        return self.role == 'veterinarian'

    def is_admin(self):
        return self.role == 'admin'

    @property
    def display_name(self):
        prefix = 'Dr. ' if self.is_veterinarian() else ''
        return f"{prefix}{self.first_name} {self.last_name}".strip()

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'phone': self.phone,
            'role': self.role,
            'is_active': self.is_active,
            'last_login': iso(self.last_login),
        }

    def __repr__(self):
        return f"<User {self.email} ({self.first_name} {self.last_name}) - {self.role}>"
