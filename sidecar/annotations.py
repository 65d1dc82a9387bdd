"""Decode VMI annotations into device overlays.

Each tunable feature is driven by one well-known annotation key. Decoding
never fails the callback: a missing key means "nothing requested" and a
malformed payload is logged and treated the same way.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Mapping

from pydantic import BaseModel, ConfigDict, StrictStr, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

DISK_IOTUNE_ANNOTATION = "iotune.kubesphere.io/disk"
IFACE_BANDWIDTH_ANNOTATION = "ifacetune.kubesphere.io/bandwidth"
HOST_USB_DEVICE_ANNOTATION = "host.usb.vm.kubevirt.io/device"  # vendor:product (0951:1665)
HOST_USB_CONTROLLER_ANNOTATION = "host.usb.vm.kubevirt.io/controller"

DEFAULT_USB_CONTROLLER_MODEL = "piix3-uhci"

# libvirt <iotune> children, in the order they are rendered.
IOTUNE_INT_FIELDS = (
    "total_bytes_sec",
    "read_bytes_sec",
    "write_bytes_sec",
    "total_iops_sec",
    "read_iops_sec",
    "write_iops_sec",
    "total_bytes_sec_max",
    "read_bytes_sec_max",
    "write_bytes_sec_max",
    "total_iops_sec_max",
    "read_iops_sec_max",
    "write_iops_sec_max",
    "size_iops_sec",
)
IOTUNE_STR_FIELDS = ("group_name",)
IOTUNE_MAX_LENGTH_FIELDS = (
    "total_bytes_sec_max_length",
    "read_bytes_sec_max_length",
    "write_bytes_sec_max_length",
    "total_iops_sec_max_length",
    "read_iops_sec_max_length",
    "write_iops_sec_max_length",
)
IOTUNE_FIELDS = IOTUNE_INT_FIELDS + IOTUNE_STR_FIELDS + IOTUNE_MAX_LENGTH_FIELDS

INBOUND_FIELDS = ("average", "peak", "burst", "floor")
OUTBOUND_FIELDS = ("average", "peak", "burst")

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")

_flat_payload = TypeAdapter(dict[str, StrictStr])


# ---------------------------------------------------------------------------
# Disk I/O throttling
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class IOThrottleOverlay:
    """Settings for a disk's ``<iotune>`` block.

    ``fields`` only holds fields that will be rendered, in render order.
    """
    fields: dict[str, str]


def _parse_int(value: str) -> int | None:
    if not _INTEGER_RE.fullmatch(value):
        return None
    return int(value)


def build_iothrottle_overlay(raw: Mapping[str, str]) -> IOThrottleOverlay:
    """Convert a raw field mapping, skipping fields that don't convert.

    Unknown keys are ignored. Empty values and integer zero leave the
    field unset.
    """
    fields: dict[str, str] = {}
    for name in IOTUNE_FIELDS:
        value = raw.get(name, "")
        if value == "":
            continue
        if name in IOTUNE_STR_FIELDS:
            fields[name] = value
            continue
        number = _parse_int(value)
        if number is None:
            logger.warning("Ignoring non-integer iotune value %s=%r", name, value)
            continue
        if number == 0:
            continue
        fields[name] = str(number)
    return IOThrottleOverlay(fields=fields)


def decode_iothrottle(annotations: Mapping[str, str]) -> IOThrottleOverlay | None:
    """Decode the disk I/O annotation (JSON object of string values)."""
    payload = annotations.get(DISK_IOTUNE_ANNOTATION, "")
    if not payload:
        return None
    try:
        raw = _flat_payload.validate_json(payload)
    except ValidationError as e:
        logger.error(
            "Unmarshal failed for %s annotation %r: %s",
            DISK_IOTUNE_ANNOTATION, payload, e,
        )
        return None
    return build_iothrottle_overlay(raw)


# ---------------------------------------------------------------------------
# Interface bandwidth
# ---------------------------------------------------------------------------

class InterfaceTune(BaseModel):
    """Per-MAC bandwidth request: raw inbound/outbound field maps."""
    model_config = ConfigDict(extra="ignore")

    inbound: dict[str, StrictStr] | None = None
    outbound: dict[str, StrictStr] | None = None

    def inbound_fields(self) -> dict[str, str]:
        return _pick(self.inbound, INBOUND_FIELDS)

    def outbound_fields(self) -> dict[str, str]:
        return _pick(self.outbound, OUTBOUND_FIELDS)


def _pick(values: dict[str, str] | None, names: tuple[str, ...]) -> dict[str, str]:
    if not values:
        return {}
    return {name: values[name] for name in names if values.get(name)}


_bandwidth_payload = TypeAdapter(dict[str, InterfaceTune | None])


@dataclass(frozen=True)
class BandwidthOverlay:
    """Bandwidth requests keyed by interface MAC address."""
    entries: dict[str, InterfaceTune]

    def for_mac(self, mac: str) -> InterfaceTune | None:
        if not mac:
            return None
        return self.entries.get(mac)


def decode_bandwidth(annotations: Mapping[str, str]) -> BandwidthOverlay | None:
    """Decode the interface bandwidth annotation (JSON keyed by MAC)."""
    payload = annotations.get(IFACE_BANDWIDTH_ANNOTATION, "")
    if not payload:
        return None
    try:
        raw = _bandwidth_payload.validate_json(payload)
    except ValidationError as e:
        logger.error(
            "Unmarshal failed for %s annotation %r: %s",
            IFACE_BANDWIDTH_ANNOTATION, payload, e,
        )
        return None
    return BandwidthOverlay(entries={mac: tune for mac, tune in raw.items() if tune is not None})


# ---------------------------------------------------------------------------
# Host USB passthrough
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HostUsbOverlay:
    vendor_id: str
    product_id: str
    controller_model: str = DEFAULT_USB_CONTROLLER_MODEL


def decode_host_usb(annotations: Mapping[str, str]) -> HostUsbOverlay | None:
    """Decode ``vendor:product``; anything but exactly two tokens is rejected.

    The ids are opaque strings and are not validated as hex.
    """
    device = annotations.get(HOST_USB_DEVICE_ANNOTATION)
    if device is None:
        return None
    parts = device.split(":")
    if len(parts) != 2:
        logger.info(
            "Host usb device %r does not match format vendor:product (0951:1665)", device
        )
        return None
    model = annotations.get(HOST_USB_CONTROLLER_ANNOTATION) or DEFAULT_USB_CONTROLLER_MODEL
    return HostUsbOverlay(vendor_id=parts[0], product_id=parts[1], controller_model=model)
