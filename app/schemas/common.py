"""Common schema helpers."""

from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, Field

# Positive money amount with at most two decimal places.
PositiveMoney = Annotated[Decimal, Field(gt=0, lt=Decimal("1000000000"), decimal_places=2)]
SignedMoney = Annotated[Decimal, Field(gt=Decimal("-1000000000"), lt=Decimal("1000000000"), decimal_places=2)]


class ORMBaseSchema(BaseModel):
    """Base schema with ORM compatibility enabled."""

    model_config = {"from_attributes": True}


class Actor(BaseModel):
    """Authenticated caller performing a write."""

    id: str
    name: Optional[str] = None
