from pydantic import BaseModel, Field


class LivenessResponse(BaseModel):
    """Response model for liveness probe."""

    status: str = Field(description="Health status, always OK while the process serves requests")
    timestamp: str = Field(description="ISO timestamp of health check")
    service: str = Field(description="Name of the answering service")
