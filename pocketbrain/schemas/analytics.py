from pydantic import BaseModel, Field


class DomainActivityStatsOut(BaseModel):
    domain: str | None
    activity: str | None
    avg_mood: float
    avg_energy: float
    avg_productivity: float
    count: int


class AnalyticsSummaryResponse(BaseModel):
    days: int = Field(description="Look-back window in days.")
    items: list[DomainActivityStatsOut]
