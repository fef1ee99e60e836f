"""
Welfare Scheme Eligibility Engine

Holds citizens' declared attributes per conversation, evaluates them against
a versioned catalogue of scheme eligibility rules and returns ranked,
explainable results.
"""

__version__ = "1.0.0"
__description__ = "Eligibility assessment and session context engine for welfare scheme discovery"
