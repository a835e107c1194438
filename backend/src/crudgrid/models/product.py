"""Product model for the read-only products collection."""

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict


class Product(BaseModel):
    """Product as served by the products endpoint."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str = "N/A"
    brand: str = "N/A"
    category: str = "N/A"
    price: float = 0
    rating: float = 0
    stock: int = 0
    description: str = "N/A"

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Product":
        """Build a product, substituting defaults for empty or missing values."""
        defaults = {
            "title": "N/A",
            "brand": "N/A",
            "category": "N/A",
            "price": 0,
            "rating": 0,
            "stock": 0,
            "description": "N/A",
        }
        data = {"id": payload["id"]}
        for key, default in defaults.items():
            data[key] = payload.get(key) or default
        return cls(**data)
