"""Access purposes and policy decisions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class AccessPurpose(StrEnum):
    READ = "read"
    EXPORT = "export"
    MODIFY = "modify"
    DELETE = "delete"


@dataclass
class AccessDecision:
    """Outcome of a policy evaluation.  ``reasons`` is empty iff allowed."""

    allowed: bool
    reasons: list[str] = field(default_factory=list)

    @classmethod
    def allow(cls) -> AccessDecision:
        return cls(allowed=True)

    @classmethod
    def deny(cls, *reasons: str) -> AccessDecision:
        return cls(allowed=False, reasons=list(reasons))
