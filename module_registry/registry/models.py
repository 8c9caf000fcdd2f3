"""
Registry protocol response records.
Field names are part of the module registry protocol.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(slots=True)
class ModuleSummary:
    """One module at one version."""
    namespace: str
    name: str
    provider: str
    version: str

    @property
    def id(self) -> str:
        return f"{self.namespace}/{self.name}/{self.provider}/{self.version}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "namespace": self.namespace,
            "name": self.name,
            "provider": self.provider,
            "version": self.version,
        }


@dataclass(slots=True)
class PaginationMeta:
    limit: str
    current_offset: str
    next_offset: str
    prev_offset: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "limit": self.limit,
            "current_offset": self.current_offset,
            "next_offset": self.next_offset,
            "prev_offset": self.prev_offset,
        }


@dataclass(slots=True)
class ModuleList:
    modules: List[ModuleSummary] = field(default_factory=list)
    meta: Optional[PaginationMeta] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"modules": [m.to_dict() for m in self.modules]}
        if self.meta is not None:
            data["meta"] = self.meta.to_dict()
        return data


@dataclass(slots=True)
class VersionList:
    """Available versions of one module, as the source address clients use."""
    source: str
    versions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "modules": [
                {
                    "source": self.source,
                    "versions": [{"version": v} for v in self.versions],
                }
            ]
        }
