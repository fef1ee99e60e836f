"""
Wiring of the catalogue, session store and engine, and their FastAPI dependencies
"""
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from fastapi import Request

from .config import Settings
from .models.session import AttributePolicy
from .services.catalogue_service import SchemeCatalogue
from .services.eligibility_service import EligibilityEngine
from .services.scheme_store import InMemorySchemeStore, MongoSchemeStore, SchemeStore
from .services.session_service import SessionContextStore


@dataclass
class EngineState:
    settings: Settings
    store: SchemeStore
    catalogue: SchemeCatalogue
    sessions: SessionContextStore
    engine: EligibilityEngine

    @property
    def idle_threshold(self) -> timedelta:
        return timedelta(minutes=self.settings.session_idle_timeout_minutes)


def build_store(settings: Settings) -> SchemeStore:
    """Create the scheme store selected by STORAGE_BACKEND"""
    if settings.storage_backend == "mongo":
        return MongoSchemeStore(
            settings.mongodb_url,
            settings.mongodb_db_name,
            timeout_seconds=settings.catalogue_timeout_seconds
        )
    return InMemorySchemeStore()


def build_engine_state(settings: Settings, store: Optional[SchemeStore] = None) -> EngineState:
    store = store or build_store(settings)
    catalogue = SchemeCatalogue(store)
    sessions = SessionContextStore(
        policy=AttributePolicy(settings.get_extra_sensitive_attributes_list())
    )
    engine = EligibilityEngine(
        catalogue,
        sessions,
        benefit_priority=settings.get_benefit_priority_list(),
        alternatives_limit=settings.alternatives_limit,
        min_confidence=settings.min_confidence,
        catalogue_timeout=settings.catalogue_timeout_seconds
    )
    return EngineState(
        settings=settings,
        store=store,
        catalogue=catalogue,
        sessions=sessions,
        engine=engine
    )


def get_state(request: Request) -> EngineState:
    return request.app.state.engine_state


def get_catalogue(request: Request) -> SchemeCatalogue:
    return get_state(request).catalogue


def get_sessions(request: Request) -> SessionContextStore:
    return get_state(request).sessions


def get_engine(request: Request) -> EligibilityEngine:
    return get_state(request).engine
