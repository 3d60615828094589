"""
Domain models for rowmapper's example application.

Defines the article record aligned with `db/init.sql`. Every field is optional:
None means "not provided", so the mapper leaves it to the database (identity,
timestamps) or skips it on write.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Article(BaseModel):
    """
    Representation of a single row in the `articles` table.
    """

    id: Optional[int] = Field(None, description="Primary key (BIGSERIAL).")
    title: Optional[str] = Field(None, description="Headline.")
    text: Optional[str] = Field(None, description="Body text.")
    created_at: Optional[datetime] = Field(None, description="Row creation timestamp.")
    updated_at: Optional[datetime] = Field(None, description="Row update timestamp.")

    model_config = {
        "frozen": False,
        "validate_assignment": False,
    }


__all__ = ["Article"]
