from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class BasePrice(BaseModel):
    """
    Reusable priced material or option. Combined with a variant multiplier it
    gives the effective price of an article.
    """
    id: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    label: str = ""
    price: str = Field("", description="Exact decimal, as text")
