"""
API routes for eligibility assessment
"""
from typing import List
from fastapi import APIRouter, Depends

from ..dependencies import get_engine
from ..models.eligibility import (
    AlternativesRequest,
    EligibilityResponse,
    Explanation,
    SchemeRecommendation
)
from ..services.eligibility_service import EligibilityEngine

router = APIRouter(prefix="/sessions/{session_id}", tags=["eligibility"])


@router.get("/eligibility", response_model=EligibilityResponse)
async def assess_eligibility(session_id: str, engine: EligibilityEngine = Depends(get_engine)):
    """
    Rank every active scheme for the session's context
    """
    results = await engine.assess_eligibility(session_id)
    return EligibilityResponse(
        session_id=session_id,
        total_schemes_checked=len(results),
        eligible_schemes=sum(1 for result in results if result.eligible),
        results=results
    )


@router.get("/eligibility/{scheme_id}/explain", response_model=Explanation)
async def explain_eligibility(
    session_id: str,
    scheme_id: str,
    engine: EligibilityEngine = Depends(get_engine)
):
    """
    Explain one scheme's verdict criterion by criterion
    """
    return await engine.explain_eligibility(session_id, scheme_id)


@router.post("/alternatives", response_model=List[SchemeRecommendation])
async def find_alternatives(
    session_id: str,
    request: AlternativesRequest,
    engine: EligibilityEngine = Depends(get_engine)
):
    """
    Recommend alternative schemes, excluding the given ids
    """
    return await engine.find_alternatives(
        session_id,
        excluded_scheme_ids=request.excluded_scheme_ids,
        limit=request.limit
    )
