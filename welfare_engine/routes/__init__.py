"""
API routes for the Welfare Scheme Eligibility Engine
"""

from .schemes import router as schemes_router
from .sessions import router as sessions_router
from .eligibility import router as eligibility_router

__all__ = [
    "schemes_router",
    "sessions_router",
    "eligibility_router"
]
