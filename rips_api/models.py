from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .errors import UnexpectedResponseError


@dataclass
class ScanStatus:
    """Progress of a project's scan; ``phase == 0 and percent == 100`` means finished."""
    phase: int
    percent: int
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def finished(self) -> bool:
        return self.phase == 0 and self.percent == 100

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ScanStatus":
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise UnexpectedResponseError(f"Scan status must be an object, got {type(data).__name__}")
        phase = data.get("phase")
        percent = data.get("percent")
        try:
            return cls(
                phase=int(phase) if phase is not None else -1,
                percent=int(percent) if percent is not None else 0,
                raw=dict(data),
            )
        except (TypeError, ValueError):
            raise UnexpectedResponseError(
                f"Scan status has non-numeric phase/percent: {phase!r}/{percent!r}"
            ) from None
