"""
Eligibility engine: assesses a session's context against the active schemes
"""
import asyncio
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from ..exceptions import CatalogueUnavailable, CriterionError, NotFound
from ..models.eligibility import (
    EligibilityResult,
    Explanation,
    SchemeRecommendation
)
from ..models.scheme import BenefitType, SchemeRecord, SchemeStatus
from .catalogue_service import SchemeCatalogue
from .criteria_evaluator import CriteriaEvaluator
from .session_service import SessionContextStore

logger = logging.getLogger(__name__)


DEFAULT_BENEFIT_PRIORITY = [
    BenefitType.FINANCIAL.value,
    BenefitType.SUBSIDY.value,
    BenefitType.LOAN.value,
    BenefitType.SERVICE.value,
]

NOT_FULL_MATCH_NOTE = "Not a full match: some eligibility criteria are not met or could not be checked"


class EligibilityEngine:
    """Matches, ranks and explains schemes for a session"""

    def __init__(
        self,
        catalogue: SchemeCatalogue,
        sessions: SessionContextStore,
        benefit_priority: Optional[Sequence[str]] = None,
        alternatives_limit: int = 3,
        min_confidence: float = 0.0,
        catalogue_timeout: float = 5.0
    ):
        self.catalogue = catalogue
        self.sessions = sessions
        self.evaluator = CriteriaEvaluator(min_confidence=min_confidence)
        self.benefit_priority = list(benefit_priority or DEFAULT_BENEFIT_PRIORITY)
        self.alternatives_limit = alternatives_limit
        self.catalogue_timeout = catalogue_timeout

    async def assess_eligibility(self, session_id: str) -> List[EligibilityResult]:
        """
        Assess a session's context against every active scheme

        Args:
            session_id: Session identifier

        Returns:
            Results ordered eligible first, then by confidence, benefit
            priority and scheme id

        Raises:
            NotFound: if the session does not exist
            CatalogueUnavailable: if the scheme list cannot be read in full
        """
        context = await self.sessions.get_context(session_id)
        language = await self.sessions.get_preferred_language(session_id)
        schemes = await self._read_catalogue(self.catalogue.list_active())

        results = []
        for scheme in schemes:
            try:
                evaluation = self.evaluator.evaluate_scheme(scheme, context)
            except CriterionError as e:
                await self._flag_malformed(scheme, e)
                continue

            results.append(EligibilityResult(
                scheme_id=scheme.scheme_id,
                scheme_version=scheme.version,
                scheme_name=scheme.localized_name(language),
                category=scheme.category,
                eligible=evaluation.eligible,
                confidence=evaluation.confidence,
                missing_requirements=evaluation.missing_requirements,
                required_documents=list(scheme.required_documents),
                benefits=list(scheme.benefits)
            ))

        ranked = self.rank(results)
        eligible_count = sum(1 for result in ranked if result.eligible)
        logger.info(
            f"Eligibility assessed for session {session_id}: "
            f"{eligible_count}/{len(ranked)} schemes eligible"
        )
        return ranked

    async def explain_eligibility(self, session_id: str, scheme_id: str) -> Explanation:
        """
        Break down one scheme's verdict criterion by criterion

        Raises:
            NotFound: if the session is unknown or the scheme has no current
                active or suspended version
            CriterionError: if the scheme's criteria are malformed
        """
        context = await self.sessions.get_context(session_id)
        language = await self.sessions.get_preferred_language(session_id)
        scheme = await self._read_catalogue(self.catalogue.get_current(scheme_id))
        if scheme.status not in (SchemeStatus.ACTIVE, SchemeStatus.SUSPENDED):
            raise NotFound(f"Scheme not found: {scheme_id}")

        try:
            evaluation = self.evaluator.evaluate_scheme(scheme, context)
        except CriterionError as e:
            await self._flag_malformed(scheme, e)
            raise

        return Explanation(
            scheme_id=scheme.scheme_id,
            scheme_version=scheme.version,
            scheme_name=scheme.localized_name(language),
            eligible=evaluation.eligible,
            confidence=evaluation.confidence,
            outcomes=evaluation.outcomes,
            missing_requirements=evaluation.missing_requirements
        )

    async def find_alternatives(
        self,
        session_id: str,
        excluded_scheme_ids: Iterable[str] = (),
        limit: Optional[int] = None
    ) -> List[SchemeRecommendation]:
        """
        Recommend other schemes for a session

        Returns the top eligible schemes outside the excluded ids; when none
        is eligible, the closest ineligible ones flagged as partial matches.
        """
        if limit is None:
            limit = self.alternatives_limit
        excluded = set(excluded_scheme_ids)
        results = [
            result for result in await self.assess_eligibility(session_id)
            if result.scheme_id not in excluded
        ]

        eligible = [result for result in results if result.eligible]
        if eligible:
            return [self._recommend(result, full_match=True) for result in eligible[:limit]]

        return [self._recommend(result, full_match=False) for result in results[:limit]]

    def rank(self, results: List[EligibilityResult]) -> List[EligibilityResult]:
        """Deterministic ordering of assessment results"""
        return sorted(results, key=self._sort_key)

    def benefit_rank(self, result: EligibilityResult) -> int:
        """Position of the scheme's best benefit type; untyped schemes last"""
        ranks = [
            self.benefit_priority.index(benefit.benefit_type.value)
            for benefit in result.benefits
            if benefit.benefit_type.value in self.benefit_priority
        ]
        return min(ranks) if ranks else len(self.benefit_priority)

    def _sort_key(self, result: EligibilityResult) -> Tuple:
        if result.eligible:
            return (0, -result.confidence, self.benefit_rank(result), result.scheme_id)
        return (1, -result.confidence, 0, result.scheme_id)

    def _recommend(self, result: EligibilityResult, full_match: bool) -> SchemeRecommendation:
        return SchemeRecommendation(
            scheme_id=result.scheme_id,
            scheme_name=result.scheme_name,
            eligible=result.eligible,
            confidence=result.confidence,
            full_match=full_match,
            note=None if full_match else NOT_FULL_MATCH_NOTE,
            missing_requirements=result.missing_requirements,
            required_documents=result.required_documents,
            benefits=result.benefits
        )

    async def _read_catalogue(self, read):
        try:
            return await asyncio.wait_for(read, timeout=self.catalogue_timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Catalogue read timed out after {self.catalogue_timeout}s")
            raise CatalogueUnavailable("Scheme catalogue did not respond in time") from e
        except (ConnectionError, OSError) as e:
            logger.error(f"Catalogue read failed: {e}")
            raise CatalogueUnavailable(f"Scheme catalogue unavailable: {e}") from e

    async def _flag_malformed(self, scheme: SchemeRecord, error: CriterionError) -> None:
        description = (
            f"Malformed criterion {error.criterion or 'unknown'} "
            f"in version {scheme.version}: {error.message}"
        )
        logger.error(f"Scheme {scheme.scheme_id} excluded from assessment: {description}")
        try:
            open_flags = await self.catalogue.list_flags(scheme.scheme_id, open_only=True)
            if any(flag.description == description for flag in open_flags):
                return
            await self.catalogue.flag_inconsistency(scheme.scheme_id, description)
        except (CatalogueUnavailable, NotFound) as e:
            logger.error(f"Could not flag scheme {scheme.scheme_id} for review: {e}")
