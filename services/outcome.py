from dataclasses import dataclass, field
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class Outcome:
    """A value plus where it came from, and why a fallback was used if one was."""

    value: Any
    source: str = ""
    reasons: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def ok(cls, value, source: str = ""):
        return cls(value=value, source=source)

    @classmethod
    def degraded(cls, value, reason, source: str = ""):
        if isinstance(reason, str):
            reason = (reason,)
        return cls(value=value, source=source, reasons=tuple(reason))

    @property
    def is_degraded(self) -> bool:
        return bool(self.reasons)

    @property
    def reason(self) -> Optional[str]:
        return "; ".join(self.reasons) if self.reasons else None
