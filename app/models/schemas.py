from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ProductBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    price: float = Field(default=0.0, ge=0)


class ProductCreate(ProductBase):
    pass


class ProductUpdate(ProductBase):
    # Must match the id in the URL; optional here so a missing id is a 400, not a 422.
    id: int | None = None


class ProductRead(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
