"""Pydantic response models for the download server.

WHY: The only JSON the server returns is the health check; a model
keeps its schema in the OpenAPI docs next to the download route.

RULES:
- All models use Field(description=...) for OpenAPI documentation
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response.

    WHY: Process supervisors need a simple endpoint to verify the
    download server is alive.
    """

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="Package version string.", json_schema_extra={"example": "0.1.0"})
    registered: int = Field(description="Number of slugs currently registered.")
