"""
Shared fixtures for the Welfare Scheme Eligibility Engine tests
"""
from datetime import datetime, timedelta, timezone

import pytest

from welfare_engine.models.session import AttributePolicy
from welfare_engine.services.catalogue_service import SchemeCatalogue
from welfare_engine.services.eligibility_service import EligibilityEngine
from welfare_engine.services.scheme_store import InMemorySchemeStore
from welfare_engine.services.session_service import SessionContextStore


class FakeClock:
    """Controllable UTC clock"""

    def __init__(self):
        self.now = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def scheme_fields(name="Test Scheme", category="general", benefit_type=None, **criteria):
    """Upsert fields for a scheme with the given eligibility criteria"""
    fields = {
        "name": name,
        "category": category,
        "eligibility": criteria,
        "required_documents": ["aadhaar"],
    }
    if not criteria:
        fields["open_to_all"] = True
    if benefit_type:
        fields["benefits"] = [{"benefit_type": benefit_type, "description": f"{benefit_type} benefit"}]
    return fields


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemorySchemeStore()


@pytest.fixture
def catalogue(store):
    return SchemeCatalogue(store)


@pytest.fixture
def sessions(clock):
    return SessionContextStore(policy=AttributePolicy(), clock=clock)


@pytest.fixture
def engine(catalogue, sessions):
    return EligibilityEngine(catalogue, sessions)


@pytest.fixture
def make_scheme():
    return scheme_fields
