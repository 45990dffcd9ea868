# orderdesk/model/menu_item.py
from sqlalchemy.sql import func
from ..extensions import db

class MenuItem(db.Model):
    __tablename__ = "menu_item"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    slug = db.Column(db.String(255), index=True)
    description = db.Column(db.Text)
    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    image = db.Column(db.String(1024))          # url; uploads live outside this api
    is_available = db.Column(db.Boolean, default=True, index=True)
    is_popular = db.Column(db.Boolean, default=False)

    category_id = db.Column(db.Integer, db.ForeignKey("category.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    def as_api(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "price": float(self.price or 0),
            "image": self.image,
            "is_available": self.is_available,
            "popular": self.is_popular,
            "category": self.category.slug if self.category else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
