"""Interface bandwidth shaping keyed by MAC address.

Only the fields named in the annotation are written; any other
``<bandwidth>`` attribute already on the interface is kept.
"""

from __future__ import annotations

import logging

from sidecar.annotations import BandwidthOverlay, InterfaceTune
from sidecar.domain import DomainDocument, Interface, ensure_child

logger = logging.getLogger(__name__)


def merge_bandwidth(interface: Interface, tune: InterfaceTune) -> Interface | None:
    """Return a copy of *interface* with *tune* merged in, or None if no-op."""
    directions = (
        ("inbound", tune.inbound_fields()),
        ("outbound", tune.outbound_fields()),
    )
    if not any(fields for _, fields in directions):
        return None

    merged = interface.copy()
    bandwidth = ensure_child(merged.element, "bandwidth")
    for tag, fields in directions:
        if not fields:
            continue
        limits = ensure_child(bandwidth, tag)
        for name, value in fields.items():
            limits.set(name, value)
    return merged


def apply_interface_bandwidth(document: DomainDocument, overlay: BandwidthOverlay) -> int:
    """Merge bandwidth limits onto interfaces whose MAC has an entry."""
    updated = 0
    for index, interface in enumerate(document.interfaces):
        mac = interface.mac
        if not mac:
            continue
        tune = overlay.for_mac(mac)
        if tune is None:
            continue
        merged = merge_bandwidth(interface, tune)
        if merged is None:
            continue
        document.set_interface(index, merged)
        updated += 1
        logger.debug("Set bandwidth on interface %s: %s", mac, merged.bandwidth)

    unmatched = set(overlay.entries) - {i.mac for i in document.interfaces}
    if unmatched:
        logger.info("No interface found for bandwidth MACs: %s", sorted(unmatched))
    return updated
