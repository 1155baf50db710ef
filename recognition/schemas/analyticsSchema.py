from datetime import date
from typing import List, Optional
from pydantic import BaseModel, Field


class TeamStatsResponse(BaseModel):
    team_id: str
    total_count: int = 0
    public_count: int = 0
    private_count: int = 0
    anonymous_count: int = 0
    top_keywords: List[str] = Field(default_factory=list)


class OrganizationAnalyticsResponse(BaseModel):
    total_recognitions: int = 0
    active_recognizers: int = 0
    recognized_employees: int = 0
    public_recognitions: int = 0
    top_keywords: List[str] = Field(default_factory=list)


class TrendPoint(BaseModel):
    date: date
    total_count: int = 0
    public_count: int = 0


class RecognitionMetricsResponse(BaseModel):
    team_id: Optional[str] = None
    total_recognitions: int = 0
    unique_senders: int = 0
    unique_recipients: int = 0
    average_keywords: float = 0.0
