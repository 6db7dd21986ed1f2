from audit_engine.services.rules.base import AvailabilityClient, BaseRule  # noqa: F401
from audit_engine.services.rules.locale_fallback import LocaleFallbackRule  # noqa: F401
from audit_engine.services.rules.publish import PublishRule  # noqa: F401
from audit_engine.services.rules.similar_path import SimilarPathRule  # noqa: F401

__all__ = ["AvailabilityClient", "BaseRule", "LocaleFallbackRule", "PublishRule", "SimilarPathRule"]
