"""Key namespace for the shared store. Stable across deployments."""

from .models import IdentifierType

PREFIX = "risk"

REVIEW_PENDING = f"{PREFIX}:review_queue:pending"
REVIEW_ORDER = f"{PREFIX}:review_queue:order"
REVIEW_DECISIONS = f"{PREFIX}:review_queue:decisions"
REVIEW_DECIDED = f"{PREFIX}:review_queue:decided"
BLACKLIST_AUDIT = f"{PREFIX}:blacklist:audit"
BLACKLIST_PATTERN = f"{PREFIX}:blacklist:*:*"


def transactions(email: str) -> str:
    return f"{PREFIX}:transactions:{normalize_email(email)}"


def failed_attempts(email: str) -> str:
    return f"{PREFIX}:failed_attempts:{normalize_email(email)}"


def blacklist(identifier: str, identifier_type: IdentifierType) -> str:
    if identifier_type == IdentifierType.EMAIL:
        identifier = normalize_email(identifier)
    return f"{PREFIX}:blacklist:{identifier_type.value}:{identifier}"


def normalize_email(email: str) -> str:
    return email.strip().lower()
