"""Hooks served by the sidecar, looked up by name."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sidecar.hooks.base import Hook, MutationResult
from sidecar.hooks.hostusb import HostUsbHook
from sidecar.hooks.ksv import KsvHook

if TYPE_CHECKING:
    from sidecar.config import Settings

_HOOKS: dict[str, type[Hook]] = {
    "ksv": KsvHook,
    "hostusb": HostUsbHook,
}


def list_hooks() -> list[str]:
    return sorted(_HOOKS)


def get_hook(name: str, settings: "Settings | None" = None) -> Hook:
    """Instantiate the hook registered under *name*.

    Raises:
        ValueError: if no hook has that name
    """
    try:
        hook_cls = _HOOKS[name]
    except KeyError:
        raise ValueError(
            f"Unknown hook {name!r}; available: {', '.join(list_hooks())}"
        ) from None
    if settings is None:
        return hook_cls()
    return hook_cls.from_settings(settings)


__all__ = [
    "Hook",
    "MutationResult",
    "KsvHook",
    "HostUsbHook",
    "get_hook",
    "list_hooks",
]
