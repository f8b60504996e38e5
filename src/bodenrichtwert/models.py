from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional


UNKNOWN = "unknown"
CURRENT = "aktuell"


@dataclass(frozen=True)
class Estimation:
    """Provenance of a value that was inferred rather than published."""

    method: str
    basis_price: float
    applied_factor: float
    as_of: str
    disclaimer: str


@dataclass(frozen=True)
class Record:
    # EUR per square meter, always > 0 for a returned record
    value: float
    effective_date: str = UNKNOWN
    land_use_class: str = UNKNOWN
    development_status: str = "B"
    zone_id: str = ""
    municipality: str = ""
    jurisdiction: str = ""
    source: str = ""
    license: str = ""
    estimation: Optional[Estimation] = None

    @property
    def is_estimate(self) -> bool:
        return self.estimation is not None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if data["estimation"] is None:
            data.pop("estimation")
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Record":
        est = data.get("estimation")
        return cls(
            value=float(data["value"]),
            effective_date=str(data.get("effective_date") or UNKNOWN),
            land_use_class=str(data.get("land_use_class") or UNKNOWN),
            development_status=str(data.get("development_status") or ""),
            zone_id=str(data.get("zone_id") or ""),
            municipality=str(data.get("municipality") or ""),
            jurisdiction=str(data.get("jurisdiction") or ""),
            source=str(data.get("source") or ""),
            license=str(data.get("license") or ""),
            estimation=Estimation(**est) if isinstance(est, dict) else None,
        )


@dataclass(frozen=True)
class Descriptor:
    state: str
    code: str
    is_fallback: bool = False
    reason: str = ""
    reference_url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LookupResult:
    status: str
    descriptor: Descriptor
    record: Optional[Record] = None
    cached: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "status": self.status,
            "state": self.descriptor.state,
            "cached": self.cached,
        }
        if self.record is not None:
            out["record"] = self.record.to_dict()
        if self.descriptor.is_fallback:
            out["reason"] = self.descriptor.reason
            out["reference_url"] = self.descriptor.reference_url
        out.update(self.extra)
        return out
