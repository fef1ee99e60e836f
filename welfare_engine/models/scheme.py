"""
Pydantic models for scheme records and eligibility criteria
"""
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict


def get_current_utc_time():
    """Get current UTC time for default values"""
    return datetime.now(timezone.utc)


SUPPORTED_OPERATORS = ['==', '!=', '>', '>=', '<', '<=', 'truthy', 'falsy', 'in', 'not_in', 'between']


class SchemeStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class BenefitType(str, Enum):
    FINANCIAL = "financial"
    SUBSIDY = "subsidy"
    LOAN = "loan"
    SERVICE = "service"


class NumericRange(BaseModel):
    """Inclusive numeric bounds; a missing bound is unconstrained"""
    min: Optional[float] = Field(None, description="Lower bound (inclusive)")
    max: Optional[float] = Field(None, description="Upper bound (inclusive)")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='after')
    def validate_bounds(self):
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f'Range lower bound {self.min} exceeds upper bound {self.max}')
        return self


class NamedPredicate(BaseModel):
    """Additional named eligibility condition"""
    attribute: str = Field(..., description="Context attribute to check")
    op: str = Field(..., description="Comparison operator")
    value: Any = Field(None, description="Comparison value")

    model_config = ConfigDict(frozen=True)

    @field_validator('op')
    @classmethod
    def validate_operator(cls, v):
        if v not in SUPPORTED_OPERATORS:
            raise ValueError(f'Operator must be one of: {SUPPORTED_OPERATORS}')
        return v


class EligibilityCriteria(BaseModel):
    """Complete eligibility criteria for a scheme"""
    age: Optional[NumericRange] = None
    income: Optional[NumericRange] = None
    occupations: Optional[List[str]] = Field(None, description="Allowed occupations (None means any)")
    states: Optional[List[str]] = Field(None, description="Allowed states (None means any)")
    categories: Optional[List[str]] = Field(None, description="Allowed social categories (None means any)")
    gender: Optional[str] = None
    predicates: Dict[str, NamedPredicate] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    def is_empty(self) -> bool:
        return (
            self.age is None
            and self.income is None
            and self.occupations is None
            and self.states is None
            and self.categories is None
            and self.gender is None
            and not self.predicates
        )


class Benefit(BaseModel):
    benefit_type: BenefitType
    description: str
    amount: Optional[float] = Field(None, ge=0)

    model_config = ConfigDict(frozen=True)


class Deadline(BaseModel):
    label: str
    due_date: date

    model_config = ConfigDict(frozen=True)


class SchemeRecord(BaseModel):
    """Immutable snapshot of one version of a scheme"""
    scheme_id: str = Field(..., pattern=r"^[A-Za-z0-9][A-Za-z0-9_\-]{0,63}$")
    version: int = Field(..., ge=1)
    name: str = Field(..., min_length=1)
    description: str = Field(default="")
    name_translations: Dict[str, str] = Field(default_factory=dict)
    description_translations: Dict[str, str] = Field(default_factory=dict)
    category: str = Field(default="general")
    eligibility: EligibilityCriteria = Field(default_factory=EligibilityCriteria)
    open_to_all: bool = Field(default=False)
    benefits: List[Benefit] = Field(default_factory=list)
    required_documents: List[str] = Field(default_factory=list)
    deadlines: List[Deadline] = Field(default_factory=list)
    status: SchemeStatus = Field(default=SchemeStatus.ACTIVE)
    updated_at: datetime = Field(default_factory=get_current_utc_time)

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "scheme_id": "pm_kisan",
                "version": 3,
                "name": "Pradhan Mantri Kisan Samman Nidhi",
                "name_translations": {"hi": "प्रधानमंत्री किसान सम्मान निधि"},
                "category": "agriculture",
                "eligibility": {
                    "occupations": ["farmer"],
                    "predicates": {
                        "owns_land": {"attribute": "land_ownership", "op": "truthy", "value": True}
                    }
                },
                "benefits": [{"benefit_type": "financial", "description": "Rs 6000 per year", "amount": 6000}],
                "required_documents": ["aadhaar", "land_record"],
                "status": "active"
            }
        }
    )

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError('Scheme name must not be blank')
        return v.strip()

    def localized_name(self, language: Optional[str]) -> str:
        return _localize(self.name, self.name_translations, language)

    def localized_description(self, language: Optional[str]) -> str:
        return _localize(self.description, self.description_translations, language)


# Fields an administrative upsert may override
UPSERT_FIELDS = frozenset(
    name for name in SchemeRecord.model_fields
    if name not in ("scheme_id", "version", "status", "updated_at")
)


def _localize(default: str, variants: Dict[str, str], language: Optional[str]) -> str:
    if not language:
        return default
    if language in variants:
        return variants[language]
    # "hi-IN" falls back to "hi"
    base = language.split("-")[0].lower()
    return variants.get(base, default)


class ReviewFlag(BaseModel):
    """Advisory administrative-review flag on a scheme"""
    scheme_id: str
    description: str = Field(..., min_length=1)
    raised_at: datetime = Field(default_factory=get_current_utc_time)
    resolved: bool = False

    model_config = ConfigDict(frozen=True)


class SchemeWriteRequest(BaseModel):
    """Administrative upsert body; only supplied fields override the base version"""
    name: Optional[str] = None
    description: Optional[str] = None
    name_translations: Optional[Dict[str, str]] = None
    description_translations: Optional[Dict[str, str]] = None
    category: Optional[str] = None
    eligibility: Optional[EligibilityCriteria] = None
    open_to_all: Optional[bool] = None
    benefits: Optional[List[Benefit]] = None
    required_documents: Optional[List[str]] = None
    deadlines: Optional[List[Deadline]] = None
    base_version: Optional[int] = Field(None, ge=1, description="Version the write is based on")

    def overrides(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude={"base_version"})


class StatusChangeRequest(BaseModel):
    status: SchemeStatus


class FlagRequest(BaseModel):
    description: str = Field(..., min_length=1, max_length=2000)
