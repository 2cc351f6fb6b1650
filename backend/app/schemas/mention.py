"""Schemas for mention submission.

Mentions are produced upstream (fetching, normalization, sentiment).
Range checks happen in the Mention Store so every entry point shares them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ingestion.core.mention_store import Mention


class MentionCreate(BaseModel):
    brand_name: str = Field(..., min_length=1, max_length=255)
    source_id: str = Field(..., min_length=1, max_length=255)
    url: str = Field("", max_length=2048)
    context: str = Field("", max_length=20000)
    timestamp: datetime = Field(..., description="Publish time; naive values are treated as UTC")
    sentiment: Optional[float] = Field(None, description="-1 (negative) to 1 (positive)")
    product_name: Optional[str] = Field(None, max_length=255)
    product_category: Optional[str] = Field(None, max_length=255)

    def to_mention(self) -> Mention:
        return Mention(
            brand_name=self.brand_name,
            source_id=self.source_id,
            url=self.url,
            context=self.context,
            timestamp=self.timestamp,
            sentiment=self.sentiment,
            product_name=self.product_name,
            product_category=self.product_category,
        )


class MentionResponse(BaseModel):
    brand_name: str
    source_id: str
    url: str
    context: str
    timestamp: datetime
    sentiment: Optional[float] = None
    product_name: Optional[str] = None
    product_category: Optional[str] = None

    @classmethod
    def from_mention(cls, m: Mention) -> "MentionResponse":
        return cls(
            brand_name=m.brand_name,
            source_id=m.source_id,
            url=m.url,
            context=m.context,
            timestamp=m.timestamp,
            sentiment=m.sentiment,
            product_name=m.product_name,
            product_category=m.product_category,
        )
