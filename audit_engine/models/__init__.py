from audit_engine.db.base import Base  # noqa: F401
from audit_engine.models.opportunity import (  # noqa: F401
    FixEntity,
    FixEntityStatus,
    Opportunity,
    OpportunityStatus,
    Suggestion,
    SuggestionStatus,
    fix_entity_suggestions,
)

__all__ = [
    "Base",
    "FixEntity",
    "FixEntityStatus",
    "Opportunity",
    "OpportunityStatus",
    "Suggestion",
    "SuggestionStatus",
    "fix_entity_suggestions",
]
