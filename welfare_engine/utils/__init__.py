"""
Utility functions for the Welfare Scheme Eligibility Engine
"""

from .validators import (
    validate_attribute_name,
    validate_attribute_value
)

__all__ = [
    "validate_attribute_name",
    "validate_attribute_value"
]
