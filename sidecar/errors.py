"""Exceptions raised by the hook sidecars."""


class HookError(Exception):
    """Base class for sidecar errors."""


class DescriptorDecodeError(HookError):
    """The VirtualMachineInstance payload could not be decoded."""


class DomainDecodeError(HookError):
    """The domain XML could not be parsed."""


class DomainEncodeError(HookError):
    """The mutated domain could not be serialized."""


class SocketSetupError(HookError):
    """The hook socket could not be created."""
