"""Disk I/O throttling: render ``<iotune>`` blocks onto every disk.

The overlay is not keyed by disk; the same block lands on each disk in
the domain, replacing whatever ``<iotune>`` the disk had.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from sidecar.annotations import IOThrottleOverlay
from sidecar.domain import DomainDocument

logger = logging.getLogger(__name__)


def build_iotune_element(overlay: IOThrottleOverlay) -> ET.Element:
    block = ET.Element("iotune")
    for name, value in overlay.fields.items():
        ET.SubElement(block, name).text = value
    return block


def apply_disk_iotune(document: DomainDocument, overlay: IOThrottleOverlay) -> int:
    """Give every disk a fresh ``<iotune>`` block. Returns disks updated."""
    updated = 0
    for index, disk in enumerate(document.disks):
        tuned = disk.copy()
        tuned.set_iotune(build_iotune_element(overlay))
        document.set_disk(index, tuned)
        updated += 1
        logger.debug("Set iotune on disk %s: %s", disk.target, overlay.fields)
    return updated
