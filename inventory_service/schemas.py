from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import MAX_QUANTITY


class ProductCreate(BaseModel):
    name: Optional[str] = Field(None, validate_default=True, max_length=255)
    description: Optional[str] = None
    stock_quantity: int = 0
    low_stock_threshold: int = 10

    @field_validator("name", mode="before")
    @classmethod
    def _name_required(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Product name is required and must be a non-empty string")
        return value.strip()

    @field_validator("description", mode="before")
    @classmethod
    def _trim_description(cls, value: Any) -> str:
        if value is not None and not isinstance(value, str):
            raise ValueError("Description must be a string")
        return value.strip() if value else ""

    @field_validator("stock_quantity")
    @classmethod
    def _stock_in_range(cls, value: int) -> int:
        if value < 0:
            raise ValueError("Stock quantity must be a non-negative integer")
        if value > MAX_QUANTITY:
            raise ValueError(f"Stock quantity cannot exceed {MAX_QUANTITY}")
        return value

    @field_validator("low_stock_threshold")
    @classmethod
    def _threshold_in_range(cls, value: int) -> int:
        if value < 0:
            raise ValueError("Low stock threshold must be a non-negative integer")
        if value > MAX_QUANTITY:
            raise ValueError(f"Low stock threshold cannot exceed {MAX_QUANTITY}")
        return value


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _name_not_blank(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Product name must be a non-empty string")
        return value.strip()

    @field_validator("description", mode="before")
    @classmethod
    def _trim_description(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError("Description must be a string")
        return value.strip()


class StockAdjustment(BaseModel):
    amount: Optional[int] = Field(None, validate_default=True)

    @field_validator("amount")
    @classmethod
    def _amount_positive(cls, value: Optional[int]) -> int:
        if value is None:
            raise ValueError("Amount is required in request body")
        if value <= 0:
            raise ValueError("Amount must be a positive integer")
        if value > MAX_QUANTITY:
            raise ValueError(f"Amount cannot exceed {MAX_QUANTITY}")
        return value


class ProductOut(BaseModel):
    id: int
    name: str
    description: str
    stock_quantity: int
    low_stock_threshold: int

    model_config = ConfigDict(from_attributes=True)
