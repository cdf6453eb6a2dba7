"""Feature gating utilities enforcing subscription access."""
from .enforcement import SUBSCRIPTION_REQUIRED, require_dealer_access, require_organizer_access
from .exceptions import FeatureGateError

__all__ = [
    "FeatureGateError",
    "SUBSCRIPTION_REQUIRED",
    "require_dealer_access",
    "require_organizer_access",
]
