from pydantic import BaseModel, Field


class ScoringBucketCreate(BaseModel):
    min_lines: int = Field(..., ge=1)
    points: int = Field(..., ge=0)
    description: str | None = None


class ScoringBucketResponse(BaseModel):
    id: int
    min_lines: int
    points: int
    description: str | None

    model_config = {"from_attributes": True}
