"""Analytics router for managers and HR."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from recognition.core.dependencies import get_analytics
from recognition.core.security import Identity, get_current_identity
from recognition.schemas.analyticsSchema import (
    OrganizationAnalyticsResponse,
    RecognitionMetricsResponse,
    TeamStatsResponse,
    TrendPoint,
)
from recognition.services.AnalyticsAggregator import AnalyticsAggregator

router = APIRouter(
    prefix="/analytics",
    tags=["analytics"]
)


@router.get("/teams/{team_id}", response_model=TeamStatsResponse)
async def get_team_stats(
    team_id: str,
    identity: Identity = Depends(get_current_identity),
    analytics: AnalyticsAggregator = Depends(get_analytics)
):
    """Recognition counts and top keywords for a team. Manager role or higher."""
    return await analytics.get_team_stats(team_id, identity.role)


@router.get("/organization", response_model=OrganizationAnalyticsResponse)
async def get_organization_analytics(
    identity: Identity = Depends(get_current_identity),
    analytics: AnalyticsAggregator = Depends(get_analytics)
):
    """Organization-wide recognition analytics. HR role or higher."""
    return await analytics.get_organization_analytics(identity.role)


@router.get("/trends", response_model=List[TrendPoint])
async def get_recognition_trends(
    team_id: Optional[str] = Query(None, description="Limit to recipients in this team"),
    identity: Identity = Depends(get_current_identity),
    analytics: AnalyticsAggregator = Depends(get_analytics)
):
    return await analytics.get_recognition_trends(identity.role, team_id=team_id)


@router.get("/metrics", response_model=RecognitionMetricsResponse)
async def get_recognition_metrics(
    team_id: Optional[str] = Query(None, description="Limit to recipients in this team"),
    identity: Identity = Depends(get_current_identity),
    analytics: AnalyticsAggregator = Depends(get_analytics)
):
    return await analytics.get_recognition_metrics(identity.role, team_id=team_id)
