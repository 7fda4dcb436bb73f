from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class ClusterNodeInfo:
    name: str
    address: str


@dataclass(frozen=True)
class NodePage:
    nodes: List[ClusterNodeInfo] = field(default_factory=list)
    continuation_token: Optional[str] = None

    @property
    def has_more(self) -> bool:
        # Empty string is "no token" as well
        return bool(self.continuation_token)
