"""Base hook interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Mapping

from sidecar.schemas import HookPoint, HookPointName

if TYPE_CHECKING:
    from sidecar.config import Settings
    from sidecar.domain import DomainDocument


@dataclass
class MutationResult:
    """What a hook did to a domain.

    ``changes`` counts touched elements per kind (e.g. "disk_iotune").
    ``fallback`` names why a requested change was dropped, if it was.
    """
    changes: Counter = field(default_factory=Counter)
    fallback: str | None = None

    @property
    def changed(self) -> bool:
        return sum(self.changes.values()) > 0


class Hook(ABC):
    """Abstract base class for sidecar hooks.

    A hook advertises its name, API versions and hook points through
    Info, and rewrites a parsed domain in ``mutate``. Decoding the wire
    inputs and falling back on errors is left to the service adapter.
    """

    #: Name reported by Info.
    name: str = ""
    #: Socket file created in the shared hook sockets directory.
    socket_name: str = ""
    #: Callback API versions served over the socket.
    callback_versions: tuple[str, ...] = ("v1alpha2",)
    #: Annotations that make the hook act; any one present is enough.
    annotation_keys: tuple[str, ...] = ()

    @classmethod
    def from_settings(cls, settings: "Settings") -> "Hook":
        return cls()

    @property
    def versions(self) -> list[str]:
        return list(self.callback_versions)

    @property
    def hook_points(self) -> list[HookPoint]:
        return [HookPoint(name=HookPointName.ON_DEFINE_DOMAIN, priority=0)]

    def wants(self, annotations: Mapping[str, str]) -> bool:
        """Whether any annotation this hook reacts to is set."""
        return any(key in annotations for key in self.annotation_keys)

    @abstractmethod
    def mutate(
        self,
        document: "DomainDocument",
        annotations: Mapping[str, str],
    ) -> MutationResult:
        """Apply the annotation-driven changes to *document* in place."""
        ...
