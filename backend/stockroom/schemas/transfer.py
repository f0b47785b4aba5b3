"""Data export/import schemas."""

from typing import Dict

from pydantic import BaseModel, Field


class ImportResult(BaseModel):
    """Counts of rows written by an import, and of rows it deleted per table."""

    products: int
    orders: int
    customers: int
    suppliers: int
    removed: Dict[str, int] = Field(default_factory=dict)
