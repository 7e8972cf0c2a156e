from typing import List, Optional
from pydantic import BaseModel, Field


class LinkCreatePayload(BaseModel):
    """Request model for creating links."""
    # Syntax is checked by the resolver, not here.
    long_url: str = Field(..., description="The URL to shorten, stored exactly as given")


class LinkRelation(BaseModel):
    rel: str
    href: str
    method: str = "GET"


class LinkResponse(BaseModel):
    """Response model for a created or looked-up link."""
    short_code: str
    short_url: str
    long_url: str
    links: List[LinkRelation] = []


class ShortenResponse(BaseModel):
    """Form endpoint response; `short_url` carries the bare code."""
    short_url: str
    original_url: str


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str
    links: int
    timestamp: Optional[str] = None
