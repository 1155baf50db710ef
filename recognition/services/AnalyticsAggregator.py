# recognition/services/AnalyticsAggregator.py
import logging
from typing import List, Optional

from recognition.constants.constants import (
    ORGANIZATION_FALLBACK_KEYWORDS,
    ORGANIZATION_TOP_KEYWORDS,
    TEAM_FALLBACK_KEYWORDS,
    TEAM_TOP_KEYWORDS,
    TREND_DAYS,
)
from recognition.core.exceptions import PermissionDeniedError
from recognition.schemas.analyticsSchema import (
    OrganizationAnalyticsResponse,
    RecognitionMetricsResponse,
    TeamStatsResponse,
    TrendPoint,
)
from recognition.services.RecognitionStore import AnalyticsScope, RecognitionStore
from recognition.utils.access_policy import (
    RoleLike,
    can_access_organization_analytics,
    can_access_team_analytics,
)

logger = logging.getLogger(__name__)


class AnalyticsAggregator:
    """Role-gated recognition rollups. Deleted recognitions never count."""

    def __init__(self, store: RecognitionStore):
        self.store = store

    async def get_team_stats(self, team_id: str, role: RoleLike) -> TeamStatsResponse:
        """
        Recognition counts by visibility for recipients in a team, with its top keywords.

        Raises:
            PermissionDeniedError: Unless the role is manager or above.
        """
        if not can_access_team_analytics(role):
            raise PermissionDeniedError("Insufficient permissions - Manager role or higher required")

        scope = AnalyticsScope(team_id=team_id)
        counts = await self.store.aggregate_counts(scope)
        top_keywords = await self._top_keywords(scope, TEAM_TOP_KEYWORDS, TEAM_FALLBACK_KEYWORDS)

        return TeamStatsResponse(
            team_id=team_id,
            total_count=counts.total,
            public_count=counts.public,
            private_count=counts.private,
            anonymous_count=counts.anonymous,
            top_keywords=top_keywords,
        )

    async def get_organization_analytics(self, role: RoleLike) -> OrganizationAnalyticsResponse:
        """
        Organization-wide totals and top keywords.

        Raises:
            PermissionDeniedError: Unless the role is HR or above.
        """
        if not can_access_organization_analytics(role):
            raise PermissionDeniedError("Insufficient permissions - HR role or higher required")

        scope = AnalyticsScope()
        counts = await self.store.aggregate_counts(scope)
        top_keywords = await self._top_keywords(
            scope, ORGANIZATION_TOP_KEYWORDS, ORGANIZATION_FALLBACK_KEYWORDS
        )

        return OrganizationAnalyticsResponse(
            total_recognitions=counts.total,
            active_recognizers=counts.distinct_senders,
            recognized_employees=counts.distinct_recipients,
            public_recognitions=counts.public,
            top_keywords=top_keywords,
        )

    async def get_recognition_trends(self, role: RoleLike, team_id: Optional[str] = None) -> List[TrendPoint]:
        """Daily counts for the most recent days with activity, newest first."""
        if not can_access_team_analytics(role):
            raise PermissionDeniedError("Insufficient permissions")

        points = await self.store.aggregate_daily(AnalyticsScope(team_id=team_id), TREND_DAYS)
        return [
            TrendPoint(date=point.day, total_count=point.total, public_count=point.public)
            for point in points
        ]

    async def get_recognition_metrics(self, role: RoleLike, team_id: Optional[str] = None) -> RecognitionMetricsResponse:
        if not can_access_team_analytics(role):
            raise PermissionDeniedError("Insufficient permissions")

        scope = AnalyticsScope(team_id=team_id)
        counts = await self.store.aggregate_counts(scope)
        try:
            average_keywords = await self.store.average_keywords(scope)
        except Exception as e:
            logger.warning(f"Keyword average failed for scope {scope}: {e}")
            average_keywords = 0.0

        return RecognitionMetricsResponse(
            team_id=team_id,
            total_recognitions=counts.total,
            unique_senders=counts.distinct_senders,
            unique_recipients=counts.distinct_recipients,
            average_keywords=round(average_keywords, 2),
        )

    async def _top_keywords(self, scope: AnalyticsScope, limit: int, fallback: List[str]) -> List[str]:
        # Keywords are a non-critical field; bad stored data must not fail the whole report
        try:
            return await self.store.aggregate_keywords(scope, limit)
        except Exception as e:
            logger.warning(f"Keyword extraction failed for scope {scope}: {e}")
            return list(fallback)
