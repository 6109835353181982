from decimal import Decimal
from typing import Optional

from sqlmodel import Field, SQLModel


class Court(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    price_per_hour: Decimal = Field(max_digits=18, decimal_places=2)
    is_active: bool = Field(default=True)
