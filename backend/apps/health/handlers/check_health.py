"""GET / - Report that the proxy is up."""

from pydantic import BaseModel, Field

from config import get_settings

# --- Response Schema ---


class HealthResponse(BaseModel):
    """Health check response."""

    ok: bool = Field(..., description="Always true while the process serves")
    service: str = Field(..., description="Service name")


# --- Handler ---


async def check_health() -> HealthResponse:
    """Liveness probe; does not touch the document store."""
    return HealthResponse(ok=True, service=get_settings().service_name)
