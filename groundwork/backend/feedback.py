"""Outcome tracking for prompt versions and per-template performance."""

import logging
from datetime import datetime, timezone

from errors import CorruptRecordError, UnknownVersionError
from models import Outcome, PromptVersion, TemplatePerformance
from store import Store

logger = logging.getLogger(__name__)

UNDERPERFORMING_THRESHOLD = 0.7
UNDERPERFORMING_MIN_USES = 3
MAX_COMMON_ISSUES = 10


class FeedbackLoop:
    """Sole owner of the template performance map."""

    def __init__(self, store: Store):
        self.store = store

    async def _load(self) -> dict[str, TemplatePerformance]:
        if not await self.store.exists(self.store.performance_path):
            return {}
        data = await self.store.read_json(self.store.performance_path)
        if not isinstance(data, dict):
            raise CorruptRecordError(str(self.store.performance_path), "expected a mapping of template ids")
        try:
            return {k: TemplatePerformance.model_validate(v) for k, v in data.items()}
        except ValueError as e:
            raise CorruptRecordError(str(self.store.performance_path), str(e)) from e

    async def _save(self, performance: dict[str, TemplatePerformance]) -> None:
        await self.store.write_json(
            self.store.performance_path,
            {k: v.model_dump(mode="json") for k, v in performance.items()},
        )

    async def record_outcome(self, version_id: str, outcome: Outcome, feedback: str = "") -> TemplatePerformance:
        """Mark a version's outcome and fold it into its template's performance.

        Raises UnknownVersionError when no version file exists for ``version_id``;
        nothing is written in that case.
        """
        path = self.store.version_path(version_id)
        if not await self.store.exists(path):
            raise UnknownVersionError(version_id)

        version = await self.store.read_model(path, PromptVersion)
        version.metadata.outcome = outcome
        version.metadata.feedback = feedback
        await self.store.write_model(path, version)

        performance = await self._load()
        perf = performance.get(version.template_id)
        if perf is None:
            perf = TemplatePerformance(template_id=version.template_id)
            performance[version.template_id] = perf

        perf.total_uses += 1
        if outcome == "success":
            perf.success_count += 1
        elif outcome == "failure":
            perf.failure_count += 1
        perf.average_rating = perf.success_count / perf.total_uses
        perf.last_analyzed = datetime.now(timezone.utc)

        issue = feedback.strip()
        if outcome != "success" and issue and issue not in perf.common_issues:
            perf.common_issues = (perf.common_issues + [issue])[-MAX_COMMON_ISSUES:]

        await self._save(performance)
        logger.info(
            f"Recorded {outcome} for {version_id}: {version.template_id} now "
            f"{perf.success_count}/{perf.total_uses} successful"
        )
        return perf

    async def analyze(self) -> list[TemplatePerformance]:
        return list((await self._load()).values())

    async def flag_underperforming(
        self,
        threshold: float = UNDERPERFORMING_THRESHOLD,
        min_uses: int = UNDERPERFORMING_MIN_USES,
    ) -> list[TemplatePerformance]:
        """Templates rated below ``threshold`` after more than ``min_uses`` outcomes."""
        return [
            p for p in await self.analyze()
            if p.average_rating < threshold and p.total_uses > min_uses
        ]
