"""KubeVirt hook sidecars.

Sidecar services that rewrite a virtual machine's libvirt domain XML at
definition time based on annotations set on the VirtualMachineInstance.
"""
