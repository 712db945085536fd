from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Category(BaseModel):
    id: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    label: str = ""
