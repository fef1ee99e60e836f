"""
Services package for the Welfare Scheme Eligibility Engine
"""

from .scheme_store import SchemeStore, InMemorySchemeStore, MongoSchemeStore
from .catalogue_service import SchemeCatalogue
from .session_service import SessionContextStore
from .criteria_evaluator import CriteriaEvaluator
from .eligibility_service import EligibilityEngine

__all__ = [
    "SchemeStore",
    "InMemorySchemeStore",
    "MongoSchemeStore",
    "SchemeCatalogue",
    "SessionContextStore",
    "CriteriaEvaluator",
    "EligibilityEngine"
]
