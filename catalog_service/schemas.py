# catalog_service/schemas.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    price: float = Field(..., gt=0)
    stock_quantity: int = Field(..., ge=0)


class ProductCreate(ProductBase):
    in_stock: bool = Field(
        True, description="Forced to false when stock_quantity is 0."
    )


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    price: Optional[float] = Field(None, gt=0)
    stock_quantity: Optional[int] = Field(None, ge=0)
    in_stock: Optional[bool] = None


class ProductFilters(BaseModel):
    include_deleted: bool = False
    search: Optional[str] = Field(None, max_length=255)
    in_stock: Optional[bool] = None
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)
    skip: int = Field(0, ge=0)
    limit: int = Field(100, ge=1, le=100)


class ProductResponse(ProductBase):
    id: int
    in_stock: bool
    image_url: Optional[str] = Field(
        None,
        description="Signed, time-limited URL of the product image. Omitted when there is no displayable image.",
    )
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DeleteResponse(BaseModel):
    message: str
    status: str
    timestamp: datetime
