# orderdesk/model/branch.py
from sqlalchemy.sql import func
from ..extensions import db

class Branch(db.Model):
    __tablename__ = "branch"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(180), nullable=False)
    slug = db.Column(db.String(180), unique=True, nullable=False, index=True)
    address = db.Column(db.String(255))
    phone = db.Column(db.String(50))
    hours = db.Column(db.String(120))
    map_url = db.Column(db.String(1024))
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)
    is_featured = db.Column(db.Boolean, default=False)
    is_active = db.Column(db.Boolean, default=True, index=True)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    def as_api(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "address": self.address,
            "phone": self.phone,
            "hours": self.hours,
            "map_url": self.map_url,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "is_featured": self.is_featured,
            "is_active": self.is_active,
        }
