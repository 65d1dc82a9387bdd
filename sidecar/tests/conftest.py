from __future__ import annotations

import json

import pytest

from sidecar.config import settings

# Domain as virt-launcher hands it to OnDefineDomain: four disks, one NIC.
DOMAIN_XML = b"""<domain type='kvm' id='1' xmlns:qemu='http://libvirt.org/schemas/domain/qemu/1.0'>
  <name>default_i-js7isze7</name>
  <uuid>3e4690eb-a343-5d13-a960-8e506f025cac</uuid>
  <memory unit='KiB'>1048576</memory>
  <currentMemory unit='KiB'>1048576</currentMemory>
  <vcpu placement='static'>1</vcpu>
  <clock offset='utc'/>
  <on_poweroff>destroy</on_poweroff>
  <on_reboot>restart</on_reboot>
  <on_crash>destroy</on_crash>
  <devices>
    <emulator>/usr/libexec/qemu-kvm</emulator>
    <disk type='block' device='disk' model='virtio-non-transitional'>
      <driver name='qemu' type='raw' cache='none' error_policy='stop' io='native' discard='unmap'/>
      <source dev='/dev/vol-5kjkm50i' index='2'/>
      <backingStore/>
      <target dev='vda' bus='virtio'/>
      <boot order='1'/>
      <alias name='ua-vol-5kjkm50i'/>
      <address type='pci' domain='0x0000' bus='0x04' slot='0x00' function='0x0'/>
    </disk>
    <disk type='file' device='disk' model='virtio-non-transitional'>
      <driver name='qemu' type='raw' cache='none' error_policy='stop' discard='unmap'/>
      <source file='/var/run/kubevirt-ephemeral-disks/cloud-init-data/default/i-js7isze7/noCloud.iso' index='1'/>
      <backingStore/>
      <target dev='vdb' bus='virtio'/>
      <alias name='ua-cloudinitdisk'/>
      <address type='pci' domain='0x0000' bus='0x05' slot='0x00' function='0x0'/>
    </disk>
    <disk type='block' device='disk'>
      <driver name='qemu' type='raw' error_policy='stop' discard='unmap'/>
      <source dev='/var/run/kubevirt/hotplug-disks/vol-73ub9mbs' index='3'/>
      <backingStore/>
      <target dev='sda' bus='scsi'/>
      <alias name='ua-vol-73ub9mbs'/>
      <address type='drive' controller='0' bus='0' target='0' unit='0'/>
    </disk>
    <disk type='block' device='disk'>
      <driver name='qemu' type='raw' error_policy='stop' discard='unmap'/>
      <source dev='/var/run/kubevirt/hotplug-disks/vol-idqoa2m1' index='4'/>
      <backingStore/>
      <target dev='sdb' bus='scsi'/>
      <alias name='ua-vol-idqoa2m1'/>
      <address type='drive' controller='0' bus='0' target='0' unit='1'/>
    </disk>
    <interface type='ethernet'>
      <mac address='86:5d:c0:a8:64:dd'/>
      <target dev='net1' managed='no'/>
      <model type='virtio-non-transitional'/>
      <mtu size='1500'/>
      <alias name='ua-eth0'/>
      <rom enabled='no'/>
      <address type='pci' domain='0x0000' bus='0x01' slot='0x00' function='0x0'/>
    </interface>
    <controller type='usb' index='0' model='none'>
      <alias name='usb'/>
    </controller>
  </devices>
</domain>"""

# Two NICs, the first already carrying a partial bandwidth block.
TWO_NIC_DOMAIN_XML = b"""<domain type='kvm'>
  <name>default_two-nics</name>
  <devices>
    <interface type='bridge'>
      <mac address='02:00:00:00:00:01'/>
      <bandwidth>
        <inbound average='500' burst='64'/>
      </bandwidth>
    </interface>
    <interface type='bridge'>
      <mac address='02:00:00:00:00:02'/>
    </interface>
    <interface type='user'/>
  </devices>
</domain>"""


# Domain as virt-launcher builds it: KubeVirt's metadata block declares a
# default namespace below the root, and a qemu: prefix sits on the root.
KUBEVIRT_DOMAIN_XML = b"""<domain type="kvm" xmlns:qemu="http://libvirt.org/schemas/domain/qemu/1.0">
  <name>default_vm</name>
  <uuid>5e1e3b0c-95a1-5d4b-9d3c-3c3f2b0a9d11</uuid>
  <metadata>
    <kubevirt xmlns="http://kubevirt.io">
      <uid>d1b6c3a2-8f0e-4b6a-9d4e-2f4c1a7b9e30</uid>
      <graceperiod>
        <deletionGracePeriodSeconds>30</deletionGracePeriodSeconds>
      </graceperiod>
    </kubevirt>
  </metadata>
  <memory unit="b">1073741824</memory>
  <devices>
    <disk type="file" device="disk">
      <driver name="qemu" type="raw" cache="none"/>
      <source file="/var/run/kubevirt-private/vmi-disks/rootdisk/disk.img"/>
      <target bus="virtio" dev="vda"/>
      <alias name="ua-rootdisk"/>
    </disk>
    <interface type="ethernet">
      <mac address="02:9e:41:00:00:07"/>
      <target dev="tap0" managed="no"/>
      <model type="virtio-non-transitional"/>
      <alias name="ua-default"/>
    </interface>
    <controller type="usb" index="0" model="none"/>
  </devices>
  <qemu:commandline>
    <qemu:env name="QEMU_AUDIO_DRV" value="none"/>
  </qemu:commandline>
</domain>"""


def vmi_json(annotations: dict[str, str] | None = None, name: str = "i-js7isze7") -> bytes:
    """Serialize a minimal VirtualMachineInstance carrying *annotations*."""
    vmi = {
        "kind": "VirtualMachineInstance",
        "apiVersion": "kubevirt.io/v1",
        "metadata": {"name": name, "namespace": "default"},
        "spec": {},
    }
    if annotations is not None:
        vmi["metadata"]["annotations"] = annotations
    return json.dumps(vmi).encode()


@pytest.fixture(autouse=True)
def _sidecar_settings(monkeypatch, tmp_path):
    """Point the sockets directory at a temp dir for every test."""
    monkeypatch.setattr(settings, "hook_sockets_dir", str(tmp_path))
    monkeypatch.setattr(settings, "hook_version", "v1alpha2")
    yield
