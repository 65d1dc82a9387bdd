"""Disk and interface tuning hook (``ksv-sidecar``).

Applies the disk I/O annotation to every disk and the bandwidth
annotation to interfaces by MAC address. Either annotation alone is
enough for the hook to act; an empty value counts as absent.
"""

from __future__ import annotations

import logging
from typing import Mapping

from sidecar.annotations import (
    DISK_IOTUNE_ANNOTATION,
    IFACE_BANDWIDTH_ANNOTATION,
    decode_bandwidth,
    decode_iothrottle,
)
from sidecar.domain import DomainDocument
from sidecar.hooks.base import Hook, MutationResult
from sidecar.hooks.iftune import apply_interface_bandwidth
from sidecar.hooks.iotune import apply_disk_iotune
from sidecar.schemas import HookPoint, HookPointName

logger = logging.getLogger(__name__)


class KsvHook(Hook):
    name = "ksv-sidecar"
    socket_name = "ksv-hook-sidecar.sock"
    callback_versions = ("v1alpha2",)
    annotation_keys = (DISK_IOTUNE_ANNOTATION, IFACE_BANDWIDTH_ANNOTATION)

    @property
    def hook_points(self) -> list[HookPoint]:
        return [
            HookPoint(name=HookPointName.PRE_CLOUD_INIT_ISO, priority=0),
            HookPoint(name=HookPointName.ON_DEFINE_DOMAIN, priority=0),
        ]

    def mutate(self, document: DomainDocument, annotations: Mapping[str, str]) -> MutationResult:
        result = MutationResult()

        if annotations.get(DISK_IOTUNE_ANNOTATION):
            iotune = decode_iothrottle(annotations)
            if iotune is None:
                result.fallback = "overlay_decode"
            else:
                result.changes["disk_iotune"] += apply_disk_iotune(document, iotune)

        if annotations.get(IFACE_BANDWIDTH_ANNOTATION):
            bandwidth = decode_bandwidth(annotations)
            if bandwidth is None:
                result.fallback = "overlay_decode"
            else:
                result.changes["interface_bandwidth"] += apply_interface_bandwidth(
                    document, bandwidth
                )

        return result
