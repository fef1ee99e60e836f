"""
Sample schemes for local development and demos
"""
import logging
from typing import Any, Dict

from .exceptions import NotFound
from .services.catalogue_service import SchemeCatalogue

logger = logging.getLogger(__name__)


SAMPLE_SCHEMES: Dict[str, Dict[str, Any]] = {
    "pm_kisan": {
        "name": "PM Kisan Samman Nidhi",
        "name_translations": {"hi": "प्रधानमंत्री किसान सम्मान निधि"},
        "description": "Income support of Rs 6000 per year to land-holding farmer families",
        "category": "agriculture",
        "eligibility": {
            "occupations": ["farmer"],
            "predicates": {
                "owns_land": {"attribute": "land_ownership", "op": "truthy", "value": True}
            }
        },
        "benefits": [{"benefit_type": "financial", "description": "Rs 6000 per year in three instalments", "amount": 6000}],
        "required_documents": ["aadhaar", "land_record", "bank_passbook"]
    },
    "old_age_pension": {
        "name": "Indira Gandhi National Old Age Pension",
        "description": "Monthly pension for senior citizens from low-income households",
        "category": "social_security",
        "eligibility": {
            "age": {"min": 60},
            "predicates": {
                "income_limit": {"attribute": "income", "op": "<", "value": 50000}
            }
        },
        "benefits": [{"benefit_type": "financial", "description": "Monthly pension"}],
        "required_documents": ["aadhaar", "age_proof", "income_certificate"]
    },
    "post_matric_scholarship": {
        "name": "Post Matric Scholarship",
        "description": "Scholarship for SC/ST students pursuing higher education",
        "category": "education",
        "eligibility": {
            "age": {"min": 15, "max": 30},
            "categories": ["SC", "ST"],
            "income": {"max": 250000}
        },
        "benefits": [{"benefit_type": "financial", "description": "Tuition and maintenance allowance"}],
        "required_documents": ["aadhaar", "caste_certificate", "income_certificate", "marksheet"]
    },
    "pmay_gramin": {
        "name": "Pradhan Mantri Awas Yojana - Gramin",
        "description": "Assistance for building a pucca house in rural areas",
        "category": "housing",
        "eligibility": {
            "income": {"max": 300000},
            "predicates": {
                "no_pucca_house": {"attribute": "owns_pucca_house", "op": "falsy", "value": False}
            }
        },
        "benefits": [
            {"benefit_type": "subsidy", "description": "Construction assistance", "amount": 120000},
            {"benefit_type": "loan", "description": "Interest subsidised housing loan"}
        ],
        "required_documents": ["aadhaar", "bank_passbook", "job_card"]
    },
    "common_service_centre": {
        "name": "Common Service Centre Assistance",
        "description": "Help with applications and documents at the nearest service centre",
        "category": "general",
        "open_to_all": True,
        "benefits": [{"benefit_type": "service", "description": "Application assistance"}]
    },
}


async def seed_catalogue(catalogue: SchemeCatalogue) -> int:
    """
    Write the sample schemes that are not yet in the catalogue

    Returns:
        Number of schemes written
    """
    written = 0
    for scheme_id, fields in SAMPLE_SCHEMES.items():
        try:
            await catalogue.get_current(scheme_id, include_inactive=True)
            continue
        except NotFound:
            pass
        await catalogue.upsert(scheme_id, fields)
        written += 1
    logger.info(f"Seeded {written} sample scheme(s)")
    return written
