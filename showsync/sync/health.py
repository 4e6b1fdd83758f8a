"""Calendar integration health for one user.

Five independent checks, all evaluated on every call.  A check that blows
up while gathering its data counts as unhealthy; it never fails the whole
report.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from showsync.calendar_providers.base import ClientFactory
from showsync.config import Settings, settings as default_settings
from showsync.credentials import CredentialProvider, Token, utcnow
from showsync.dateutils import ensure_aware
from showsync.models.results import (
    CalendarSummary,
    HealthDetails,
    HealthReport,
    SyncStatistics,
)
from showsync.sync.conflicts import ConflictDetector
from showsync.sync.stats import StatisticsAggregator

log = logging.getLogger("showsync.health")


class HealthMonitor:
    def __init__(
        self,
        credentials: CredentialProvider,
        client_factory: ClientFactory,
        statistics: StatisticsAggregator,
        conflicts: ConflictDetector,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._credentials = credentials
        self._client_factory = client_factory
        self._statistics = statistics
        self._conflicts = conflicts
        self._settings = settings or default_settings
        self._clock = clock

    async def check_health(self, user_id: str) -> HealthReport:
        issues: list[str] = []
        recommendations: list[str] = []
        details = HealthDetails()

        # 1. Token
        token: Token | None = None
        try:
            token = await self._credentials.get_valid_token(user_id)
        except Exception:
            log.exception("Health: token check failed for user %s", user_id)
        details.token_valid = token is not None
        if not details.token_valid:
            issues.append("Calendar token is invalid or expired")
            recommendations.append("Reconnect your calendar account")

        # 2. Calendar reachability
        try:
            if token is not None:
                access = await self._client_factory(token).check_access()
                if access.ok and access.value is not None:
                    details.calendar_access = True
                    details.calendar = CalendarSummary(
                        calendar_id=access.value.calendar_id,
                        display_name=access.value.display_name,
                        time_zone=access.value.time_zone,
                    )
        except Exception:
            log.exception("Health: calendar access check failed for user %s", user_id)
        if not details.calendar_access:
            issues.append("Calendar cannot be accessed")
            recommendations.append("Check your calendar account permissions")

        # 3. Recent sync activity
        stats: SyncStatistics | None = None
        try:
            stats = await self._statistics.stats(user_id)
            if stats.last_sync_at is not None:
                age = self._clock() - ensure_aware(stats.last_sync_at)
                details.recent_sync_activity = age < timedelta(
                    days=self._settings.health_recent_sync_days
                )
        except Exception:
            log.exception("Health: statistics failed for user %s", user_id)
        if not details.recent_sync_activity:
            issues.append("No recent sync activity")
            recommendations.append("Run a manual sync")

        # 4. Conflicts
        try:
            report = await self._conflicts.check(user_id)
            details.conflicts_count = len(report.conflicts)
            if report.has_conflicts:
                issues.append(f"{details.conflicts_count} schedule conflict(s) detected")
                recommendations.append("Review and resolve the conflicting times")
        except Exception:
            log.exception("Health: conflict check failed for user %s", user_id)
            issues.append("Schedule conflicts could not be checked")
            recommendations.append("Retry later or check your calendar access")

        # 5. Coverage
        if stats is None:
            issues.append("Sync statistics are unavailable")
            recommendations.append("Run a full sync")
        else:
            details.sync_percentage = stats.sync_percentage
            if (
                stats.sync_percentage < self._settings.health_min_sync_percentage
                and stats.total > 0
            ):
                issues.append("Low booking sync rate")
                recommendations.append("Run a full sync")

        healthy = not issues
        if not healthy:
            log.info("User %s integration unhealthy: %s", user_id, "; ".join(issues))
        return HealthReport(
            healthy=healthy,
            issues=issues,
            recommendations=recommendations,
            details=details,
        )
