"""
Cart Storage API Pydantic Models

Request bodies use the storefront's camelCase field names.
"""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class _CartRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    product_id: Optional[str] = Field(None, alias="productId")
    selected_size: Any = Field(None, alias="selectedSize")

    @property
    def size_given(self) -> bool:
        """False when the client left selectedSize out entirely (all variants)."""
        return "selected_size" in self.model_fields_set


class AddToCartRequest(_CartRequest):
    quantity: int = 1


class UpdateCartItemRequest(_CartRequest):
    quantity: Optional[int] = None


class RemoveCartItemRequest(_CartRequest):
    pass
