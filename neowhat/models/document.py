"""Knowledge base document models."""

import uuid
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field


class StoredDocument(BaseModel):
    """A chunk of tenant knowledge with its embedding."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    tenant_id: str
    content: str
    embedding: list[float] | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


@dataclass
class RetrievedPassage:
    """A passage returned by vector or text search."""

    content: str
    similarity: float | None = None
    metadata: dict[str, Any] | None = None
