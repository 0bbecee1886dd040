"""Database Models - Pydantic models for catalog entities."""
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator

from shoecart.services.money import to_decimal as _to_decimal, to_json_number


class Product(BaseModel):
    """Catalog product (a shoe model)."""
    model_config = ConfigDict(extra="ignore")  # Ignore unknown fields from DB

    id: str
    brand_id: Optional[str] = None
    brand_name: str = ""
    model: str = ""
    description: Optional[str] = None
    price: Decimal
    old_price: Optional[Decimal] = None
    image: Optional[str] = None
    category_id: Optional[str] = None
    is_new: bool = False
    is_on_sale: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("price", mode="before")
    @classmethod
    def convert_price_to_decimal(cls, v):
        return _to_decimal(v)

    @field_validator("old_price", mode="before")
    @classmethod
    def convert_old_price_to_decimal(cls, v):
        return None if v is None else _to_decimal(v)

    def to_cart_payload(self, selected_size: Optional[int]) -> dict:
        """Product as embedded in a cart line item (camelCase, like the storefront)."""
        return {
            "id": self.id,
            "brandId": self.brand_id,
            "brandName": self.brand_name,
            "model": self.model,
            "description": self.description,
            "price": to_json_number(self.price),
            "oldPrice": to_json_number(self.old_price),
            "image": self.image,
            "categoryId": self.category_id,
            "isNew": self.is_new,
            "isOnSale": self.is_on_sale,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "selectedSize": selected_size,
        }

    def to_price_payload(self) -> dict:
        return {
            "id": self.id,
            "price": to_json_number(self.price),
            "oldPrice": to_json_number(self.old_price),
            "model": self.model,
            "brandName": self.brand_name,
        }
