"""
Pydantic models for eligibility results, explanations and recommendations
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional
from pydantic import BaseModel, Field, ConfigDict

from .scheme import Benefit


def get_current_utc_time():
    """Get current UTC time for default values"""
    return datetime.now(timezone.utc)


class CriterionStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    UNKNOWN = "unknown"


class CriterionOutcome(BaseModel):
    """Outcome of one criterion against the context"""
    criterion: str = Field(..., description="Stable criterion label")
    kind: str = Field(..., description="range, set, match or predicate")
    attribute: str
    status: CriterionStatus
    expected: Any = None
    value_used: Any = Field(None, description="Context value used (None when absent)")
    note: Optional[str] = None


class EligibilityResult(BaseModel):
    """Result of eligibility assessment for a single scheme"""
    scheme_id: str = Field(..., description="Scheme identifier")
    scheme_version: int = Field(..., description="Version of the scheme evaluated")
    scheme_name: str = Field(..., description="Scheme name in the session's language")
    category: str = Field(default="general")
    eligible: bool = Field(..., description="Whether the citizen is eligible")
    confidence: float = Field(..., ge=0, le=1, description="Fraction of criteria that could be evaluated")
    missing_requirements: List[str] = Field(default_factory=list, description="Attributes needed but not known")
    required_documents: List[str] = Field(default_factory=list, description="Documents needed for application")
    benefits: List[Benefit] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "scheme_id": "old_age_pension",
                "scheme_version": 2,
                "scheme_name": "Old Age Pension",
                "category": "social_security",
                "eligible": True,
                "confidence": 0.5,
                "missing_requirements": ["income"],
                "required_documents": ["aadhaar", "age_proof"],
                "benefits": [{"benefit_type": "financial", "description": "Monthly pension"}]
            }
        }
    )


class EligibilityResponse(BaseModel):
    """Complete ranked assessment for a session"""
    session_id: str
    total_schemes_checked: int
    eligible_schemes: int
    results: List[EligibilityResult]
    checked_at: datetime = Field(default_factory=get_current_utc_time)


class Explanation(BaseModel):
    """Per-criterion breakdown of one scheme's verdict"""
    scheme_id: str
    scheme_version: int
    scheme_name: str
    eligible: bool
    confidence: float = Field(..., ge=0, le=1)
    outcomes: List[CriterionOutcome] = Field(default_factory=list)
    missing_requirements: List[str] = Field(default_factory=list)


class SchemeRecommendation(BaseModel):
    """Alternative scheme offered to the citizen"""
    scheme_id: str
    scheme_name: str
    eligible: bool
    confidence: float = Field(..., ge=0, le=1)
    full_match: bool
    note: Optional[str] = None
    missing_requirements: List[str] = Field(default_factory=list)
    required_documents: List[str] = Field(default_factory=list)
    benefits: List[Benefit] = Field(default_factory=list)


class AlternativesRequest(BaseModel):
    excluded_scheme_ids: List[str] = Field(default_factory=list)
    limit: Optional[int] = Field(None, ge=1, le=50)
