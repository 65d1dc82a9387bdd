"""Host USB passthrough hook.

Reads ``host.usb.vm.kubevirt.io/device`` (``vendor:product``) and appends
a USB controller plus a ``<hostdev>`` for that device. Nothing is
deduplicated: running the hook twice on the same domain adds the
controller and device twice.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Mapping

from sidecar.annotations import (
    HOST_USB_CONTROLLER_ANNOTATION,
    HOST_USB_DEVICE_ANNOTATION,
    HostUsbOverlay,
    decode_host_usb,
)
from sidecar.domain import Controller, DeviceAddress, DomainDocument, HostDevice
from sidecar.hooks.base import Hook, MutationResult

if TYPE_CHECKING:
    from sidecar.config import Settings

logger = logging.getLogger(__name__)

# Fixed slot the passthrough device is attached at.
USB_DEVICE_ADDRESS = DeviceAddress(type="usb", bus="0", port="1")


def inject_host_usb(document: DomainDocument, overlay: HostUsbOverlay) -> None:
    document.append_controller(
        Controller(type="usb", index="0", model=overlay.controller_model)
    )
    document.append_host_device(
        HostDevice(
            type="usb",
            mode="subsystem",
            managed="yes",
            vendor_id=overlay.vendor_id,
            product_id=overlay.product_id,
            address=USB_DEVICE_ADDRESS,
        )
    )


class HostUsbHook(Hook):
    """Attach a host USB device named by annotation."""

    name = "hostusb"
    socket_name = "host-usb.sock"
    callback_versions = ("v1alpha1", "v1alpha2")
    annotation_keys = (HOST_USB_DEVICE_ANNOTATION,)

    def __init__(self, version: str = "v1alpha2"):
        self.version = version

    @classmethod
    def from_settings(cls, settings: "Settings") -> "HostUsbHook":
        return cls(version=settings.hook_version)

    @property
    def versions(self) -> list[str]:
        # Info advertises only the configured version
        return [self.version]

    def mutate(self, document: DomainDocument, annotations: Mapping[str, str]) -> MutationResult:
        result = MutationResult()
        overlay = decode_host_usb(annotations)
        if overlay is None:
            result.fallback = "usb_format"
            return result

        inject_host_usb(document, overlay)
        result.changes["usb_controller"] += 1
        result.changes["usb_hostdev"] += 1
        logger.info(
            "Attached host usb device %s:%s (controller model %s)",
            overlay.vendor_id,
            overlay.product_id,
            overlay.controller_model,
        )
        if HOST_USB_CONTROLLER_ANNOTATION not in annotations:
            logger.debug("No controller model annotation, used %s", overlay.controller_model)
        return result
