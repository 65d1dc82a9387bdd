"""Libvirt domain XML document model.

Wraps an ElementTree of the domain definition and exposes the device
collections the hooks touch: disks, interfaces, controllers and host
devices. Everything else in the document is carried through untouched,
including comments, ``qemu:`` elements and KubeVirt's ``<metadata>`` block.

Disks and interfaces are element-backed views so edits keep any
attribute or child the sidecars do not know about. Controllers and host
devices are only ever appended, so they are plain dataclasses rendered
to fresh elements.
"""

from __future__ import annotations

import copy
import xml.etree.ElementTree as ET
from dataclasses import dataclass

from sidecar.errors import DomainDecodeError, DomainEncodeError

# Namespaces that appear in libvirt domains built by virt-launcher. A
# default namespace declared below the root (KubeVirt's
# ``<metadata><kubevirt xmlns="http://kubevirt.io">``) is written back
# under its prefix here; unknown namespaces get ElementTree's ``nsN``.
NAMESPACE_PREFIXES = {
    "qemu": "http://libvirt.org/schemas/domain/qemu/1.0",
    "kubevirt": "http://kubevirt.io",
    "libosinfo": "http://libosinfo.org/xmlns/libvirt/domain/1.0",
}

for _prefix, _uri in NAMESPACE_PREFIXES.items():
    ET.register_namespace(_prefix, _uri)


# ---------------------------------------------------------------------------
# Element helpers
# ---------------------------------------------------------------------------

def append_child(parent: ET.Element, child: ET.Element) -> ET.Element:
    """Append *child* to *parent*, reusing the siblings' indentation."""
    children = list(parent)
    if children:
        last = children[-1]
        child.tail = last.tail
        if parent.text is not None and not parent.text.strip():
            last.tail = parent.text
    parent.append(child)
    return child


def ensure_child(parent: ET.Element, tag: str) -> ET.Element:
    """Return the first *tag* child of *parent*, creating it if missing."""
    existing = parent.find(tag)
    if existing is not None:
        return existing
    return append_child(parent, ET.Element(tag))


def replace_child(parent: ET.Element, new: ET.Element) -> None:
    """Replace the first child with *new*'s tag in place, or append *new*."""
    existing = parent.find(new.tag)
    if existing is None:
        append_child(parent, new)
        return
    new.tail = existing.tail
    parent[list(parent).index(existing)] = new


# ---------------------------------------------------------------------------
# Devices
# ---------------------------------------------------------------------------

class _ElementDevice:
    """A device backed by its own element."""

    def __init__(self, element: ET.Element):
        self.element = element

    def copy(self):
        """Detached deep copy; edits do not reach the source document."""
        return type(self)(copy.deepcopy(self.element))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({ET.tostring(self.element, encoding='unicode')!r})"


class Disk(_ElementDevice):
    """A ``<disk>`` element."""

    @property
    def target(self) -> str | None:
        target = self.element.find("target")
        return target.get("dev") if target is not None else None

    @property
    def iotune(self) -> dict[str, str] | None:
        """Current ``<iotune>`` children as tag -> text, or None."""
        block = self.element.find("iotune")
        if block is None:
            return None
        return {c.tag: (c.text or "") for c in block if isinstance(c.tag, str)}

    def set_iotune(self, block: ET.Element) -> None:
        replace_child(self.element, block)


class Interface(_ElementDevice):
    """An ``<interface>`` element."""

    @property
    def mac(self) -> str:
        mac = self.element.find("mac")
        if mac is None:
            return ""
        return mac.get("address", "")

    @property
    def bandwidth(self) -> dict[str, dict[str, str]] | None:
        """Current ``<bandwidth>`` as direction -> attributes, or None."""
        block = self.element.find("bandwidth")
        if block is None:
            return None
        return {c.tag: dict(c.attrib) for c in block if isinstance(c.tag, str)}


@dataclass
class Controller:
    type: str
    index: str = "0"
    model: str = ""

    @classmethod
    def from_element(cls, element: ET.Element) -> "Controller":
        return cls(
            type=element.get("type", ""),
            index=element.get("index", ""),
            model=element.get("model", ""),
        )

    def to_element(self) -> ET.Element:
        attrs = {"type": self.type, "index": self.index}
        if self.model:
            attrs["model"] = self.model
        return ET.Element("controller", attrs)


@dataclass
class DeviceAddress:
    type: str
    bus: str = ""
    port: str = ""


@dataclass
class HostDevice:
    """A ``<hostdev>`` passthrough device identified by vendor/product id."""
    type: str
    vendor_id: str = ""
    product_id: str = ""
    mode: str = "subsystem"
    managed: str = "yes"
    address: DeviceAddress | None = None

    @classmethod
    def from_element(cls, element: ET.Element) -> "HostDevice":
        vendor = element.find("source/vendor")
        product = element.find("source/product")
        address = element.find("address")
        return cls(
            type=element.get("type", ""),
            mode=element.get("mode", ""),
            managed=element.get("managed", ""),
            vendor_id=vendor.get("id", "") if vendor is not None else "",
            product_id=product.get("id", "") if product is not None else "",
            address=DeviceAddress(
                type=address.get("type", ""),
                bus=address.get("bus", ""),
                port=address.get("port", ""),
            ) if address is not None else None,
        )

    def to_element(self) -> ET.Element:
        element = ET.Element(
            "hostdev", {"mode": self.mode, "type": self.type, "managed": self.managed}
        )
        source = ET.SubElement(element, "source")
        ET.SubElement(source, "vendor", {"id": self.vendor_id})
        ET.SubElement(source, "product", {"id": self.product_id})
        if self.address is not None:
            attrs = {"type": self.address.type}
            if self.address.bus:
                attrs["bus"] = self.address.bus
            if self.address.port:
                attrs["port"] = self.address.port
            ET.SubElement(element, "address", attrs)
        return element


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------

class DomainDocument:
    """A parsed ``<domain>`` definition."""

    def __init__(self, root: ET.Element):
        self.root = root

    @classmethod
    def from_xml(cls, data: bytes | str) -> "DomainDocument":
        if isinstance(data, str):
            data = data.encode("utf-8")
        try:
            parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True, insert_pis=True))
            root = ET.fromstring(data, parser=parser)
        except ET.ParseError as e:
            raise DomainDecodeError(f"invalid domain XML: {e}") from e
        if root.tag != "domain":
            raise DomainDecodeError(f"expected <domain> root element, got <{root.tag}>")
        return cls(root)

    def to_xml(self) -> bytes:
        """Serialize without an XML declaration.

        Namespaced elements are written with the prefixes from
        ``NAMESPACE_PREFIXES``; all namespace declarations move to the
        root element.
        """
        try:
            text = ET.tostring(self.root, encoding="unicode")
        except (TypeError, ValueError) as e:
            raise DomainEncodeError(f"cannot serialize domain: {e}") from e
        return text.encode("utf-8")

    @property
    def name(self) -> str:
        return self.root.findtext("name", default="")

    @property
    def devices(self) -> ET.Element | None:
        return self.root.find("devices")

    def _ensure_devices(self) -> ET.Element:
        return ensure_child(self.root, "devices")

    def _device_elements(self, tag: str) -> list[ET.Element]:
        devices = self.devices
        if devices is None:
            return []
        return devices.findall(tag)

    def _set_device(self, tag: str, index: int, element: ET.Element) -> None:
        old = self._device_elements(tag)[index]
        devices = self.devices
        element.tail = old.tail
        devices[list(devices).index(old)] = element

    @property
    def disks(self) -> list[Disk]:
        return [Disk(e) for e in self._device_elements("disk")]

    def set_disk(self, index: int, disk: Disk) -> None:
        """Write *disk* back over the disk at *index* (declaration order)."""
        self._set_device("disk", index, disk.element)

    @property
    def interfaces(self) -> list[Interface]:
        return [Interface(e) for e in self._device_elements("interface")]

    def set_interface(self, index: int, interface: Interface) -> None:
        self._set_device("interface", index, interface.element)

    @property
    def controllers(self) -> list[Controller]:
        return [Controller.from_element(e) for e in self._device_elements("controller")]

    def append_controller(self, controller: Controller) -> None:
        append_child(self._ensure_devices(), controller.to_element())

    @property
    def host_devices(self) -> list[HostDevice]:
        return [HostDevice.from_element(e) for e in self._device_elements("hostdev")]

    def append_host_device(self, host_device: HostDevice) -> None:
        append_child(self._ensure_devices(), host_device.to_element())
