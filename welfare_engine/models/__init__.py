"""
Models package for the Welfare Scheme Eligibility Engine
"""

from .scheme import (
    SchemeRecord,
    SchemeStatus,
    EligibilityCriteria,
    NumericRange,
    NamedPredicate,
    Benefit,
    BenefitType,
    Deadline,
    ReviewFlag
)

from .session import (
    AttributePolicy,
    Sensitivity,
    UserContext,
    UserSession,
    WriteOutcome
)

from .eligibility import (
    CriterionOutcome,
    CriterionStatus,
    EligibilityResult,
    Explanation,
    SchemeRecommendation
)

__all__ = [
    # Scheme models
    "SchemeRecord",
    "SchemeStatus",
    "EligibilityCriteria",
    "NumericRange",
    "NamedPredicate",
    "Benefit",
    "BenefitType",
    "Deadline",
    "ReviewFlag",

    # Session models
    "AttributePolicy",
    "Sensitivity",
    "UserContext",
    "UserSession",
    "WriteOutcome",

    # Eligibility models
    "CriterionOutcome",
    "CriterionStatus",
    "EligibilityResult",
    "Explanation",
    "SchemeRecommendation"
]
