"""
Pydantic schemas shared by the weather and disaster routes.

Engine payloads are nested provider dicts whose keys the frontend reads
directly, so responses are declared as envelopes with open `data` bodies
rather than fully re-modelled.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------

class ApiResponse(BaseModel):
    """`{success, data, meta?}` envelope returned by every data route."""
    model_config = ConfigDict(extra="allow")

    success: bool = True
    data: Dict[str, Any] = Field(default_factory=dict)
    meta: Optional[Dict[str, Any]] = None


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

class WeatherHealthData(BaseModel):
    api_status: str = Field(..., examples=["online", "offline"])
    cache_status: str = Field(..., examples=["operational", "unavailable", "unknown"])
    cache_backend: Optional[str] = None
    test_query: Optional[str] = None
    last_check: str


class WeatherHealthResponse(BaseModel):
    success: bool
    message: str
    error: Optional[str] = None
    data: WeatherHealthData


class ServiceInfo(BaseModel):
    service: str
    version: str
    environment: str
    modules: List[str]
    docs: str = "/docs"
