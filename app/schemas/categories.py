from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SubcategoryIn(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    description: Optional[str] = None
    is_active: bool = True


class CategoryIn(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    description: Optional[str] = None
    is_active: bool = True
    subcategories: List[SubcategoryIn] = Field(default_factory=list)


class SubcategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category_id: int
    name: str
    description: Optional[str] = None
    is_active: bool
    created_at: datetime


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    is_active: bool
    created_at: datetime
    subcategories: List[SubcategoryOut] = Field(default_factory=list)


class CategoryUpdate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    description: Optional[str] = None
    is_active: bool = True


class CategoryPage(BaseModel):
    items: List[CategoryOut]
    total: int
    page: int
    limit: int
