from __future__ import annotations

from ..extensions import db
from comptoir.time_utils import to_utc_z


PRODUCT_CATEGORIES = ("Menus", "Plats", "Boissons", "Desserts", "Partenariat")


class Product(db.Model):
    """
    Sellable product with its on-hand stock counter.

    Stock only moves through sales (conditional decrement, see
    sales_service) and restock (absolute set).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category_name", "category", "name"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(32), nullable=False)

    price = db.Column(db.Float, nullable=False, default=0)
    corporate_price = db.Column(db.Float, nullable=True)
    cost = db.Column(db.Float, nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "price": self.price,
            "corporate_price": self.corporate_price,
            "cost": self.cost,
            "stock": self.stock,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
