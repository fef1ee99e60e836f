"""
Pydantic models for citizen sessions and their declared attributes
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
from pydantic import BaseModel, Field, ConfigDict


def get_current_utc_time():
    """Get current UTC time for default values"""
    return datetime.now(timezone.utc)


WELL_KNOWN_ATTRIBUTES = [
    "age",
    "income",
    "occupation",
    "state",
    "district",
    "category",
    "gender",
    "family_size",
    "land_ownership",
]

# Never downgraded to ordinary, whatever the deployment policy says
ALWAYS_SENSITIVE = frozenset({"income", "category"})


class Sensitivity(str, Enum):
    ORDINARY = "ordinary"
    SENSITIVE = "sensitive"


class WriteOutcome(str, Enum):
    STORED = "stored"
    REQUIRES_CONFIRMATION = "requires_confirmation"


class AttributePolicy:
    """Tags each context attribute as ordinary or sensitive"""

    def __init__(self, extra_sensitive: Iterable[str] = ()):
        self._levels: Dict[str, Sensitivity] = {
            name: Sensitivity.ORDINARY for name in WELL_KNOWN_ATTRIBUTES
        }
        for name in ALWAYS_SENSITIVE:
            self._levels[name] = Sensitivity.SENSITIVE
        for name in extra_sensitive:
            self.mark_sensitive(name)

    def mark_sensitive(self, name: str) -> None:
        self._levels[name] = Sensitivity.SENSITIVE

    def sensitivity(self, name: str) -> Sensitivity:
        return self._levels.get(name, Sensitivity.ORDINARY)

    def is_sensitive(self, name: str) -> bool:
        return self.sensitivity(name) is Sensitivity.SENSITIVE

    def sensitive_attributes(self) -> List[str]:
        return sorted(name for name, level in self._levels.items() if level is Sensitivity.SENSITIVE)


class UserContext(BaseModel):
    """Declared attributes of a citizen; a missing or None value is unknown"""
    attributes: Dict[str, Any] = Field(default_factory=dict)

    def get(self, name: str) -> Any:
        return self.attributes.get(name)

    def is_known(self, name: str) -> bool:
        return self.attributes.get(name) is not None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "attributes": {
                    "age": 65,
                    "state": "UP",
                    "occupation": "farmer",
                    "income": None
                }
            }
        }
    )


class UserSession(BaseModel):
    """Per-conversation state; exclusively owns its context"""
    session_id: str
    context: UserContext = Field(default_factory=UserContext)
    created_at: datetime = Field(default_factory=get_current_utc_time)
    last_activity: datetime = Field(default_factory=get_current_utc_time)
    confirmations: Dict[str, datetime] = Field(default_factory=dict)
    preferred_language: str = Field(default="en")

    def wipe(self) -> None:
        self.context.attributes.clear()
        self.confirmations.clear()


class SessionInfo(BaseModel):
    """Session metadata without any attribute values"""
    session_id: str
    preferred_language: str
    created_at: datetime
    last_activity: datetime
    confirmed_attributes: List[str] = Field(default_factory=list)
    known_attributes: List[str] = Field(default_factory=list)


class CreateSessionRequest(BaseModel):
    preferred_language: str = Field(default="en", min_length=2, max_length=16)


class CreateSessionResponse(BaseModel):
    session_id: str


class AttributeWriteRequest(BaseModel):
    value: Any = Field(None, description="Attribute value (null marks it unknown)")
    confirmed: bool = Field(False, description="Explicit confirmation for sensitive attributes")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"value": 30000, "confirmed": True}
        }
    )


class AttributeWriteResponse(BaseModel):
    session_id: str
    attribute: str
    status: WriteOutcome
