"""Security module for termops."""

from termops.security.policy import (
    DENIED_PATTERNS,
    CommandVerdict,
    SecurityPolicy,
    SecurityViolation,
)

__all__ = ["DENIED_PATTERNS", "CommandVerdict", "SecurityPolicy", "SecurityViolation"]
