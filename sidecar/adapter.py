"""Hook service adapter: wire inputs in, domain XML out.

Every callback follows the same path: decode the VMI, bail out early if
the hook has nothing to do, parse the domain, let the hook mutate it and
serialize it again. Any decode or encode failure returns the caller's
original domain XML untouched. A missing tuning parameter is
recoverable, a failed domain definition is not.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from pydantic import ValidationError

from sidecar.domain import DomainDocument
from sidecar.errors import DescriptorDecodeError, DomainDecodeError, DomainEncodeError
from sidecar.hooks.base import Hook
from sidecar.metrics import hook_call_duration, hook_fallbacks, hook_mutations
from sidecar.schemas import CloudInitData, InfoResult, VirtualMachineInstance
from sidecar.timing import TimedOperation

logger = logging.getLogger(__name__)


def _text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def decode_vmi(vmi_json: bytes) -> VirtualMachineInstance:
    try:
        return VirtualMachineInstance.model_validate_json(vmi_json)
    except ValidationError as e:
        raise DescriptorDecodeError(str(e)) from e


class HookServiceAdapter:
    """Expose a hook's Info/OnDefineDomain/PreCloudInitIso operations."""

    def __init__(self, hook: Hook):
        self.hook = hook
        self._handlers: dict[str, Callable[..., Any]] = {
            "Info": self.info,
            "OnDefineDomain": self.on_define_domain,
            "PreCloudInitIso": self.pre_cloud_init_iso,
        }

    @property
    def operations(self) -> list[str]:
        return list(self._handlers)

    def dispatch(self, operation: str, *args: Any) -> Any:
        """Run *operation* through its bound handler, timing the call."""
        try:
            handler = self._handlers[operation]
        except KeyError:
            raise ValueError(f"Unknown hook operation: {operation}") from None

        with TimedOperation(
            histogram=hook_call_duration,
            labels={"hook": self.hook.name, "operation": operation, "status": "auto"},
            log_event="hook_call",
        ):
            return handler(*args)

    def _fallback(self, reason: str) -> None:
        hook_fallbacks.labels(hook=self.hook.name, reason=reason).inc()

    # --- Operations ---

    def info(self) -> InfoResult:
        logger.info("Hook's Info method has been called")
        return InfoResult(
            name=self.hook.name,
            versions=self.hook.versions,
            hook_points=self.hook.hook_points,
        )

    def on_define_domain(self, vmi: bytes, domain_xml: bytes) -> bytes:
        logger.info("Hook's OnDefineDomain callback method has been called")

        try:
            vmi_spec = decode_vmi(vmi)
        except DescriptorDecodeError as e:
            logger.error("Failed to unmarshal given VMI spec: %s (%s)", _text(vmi), e)
            self._fallback("descriptor_decode")
            return domain_xml

        annotations = vmi_spec.metadata.annotations
        if not self.hook.wants(annotations):
            logger.info("Don't need to adjust domain xml for VMI %s", vmi_spec.metadata.name)
            return domain_xml

        try:
            document = DomainDocument.from_xml(domain_xml)
        except DomainDecodeError as e:
            logger.error("Failed to unmarshal given domain spec: %s (%s)", _text(domain_xml), e)
            self._fallback("domain_decode")
            return domain_xml

        result = self.hook.mutate(document, annotations)
        if result.fallback:
            self._fallback(result.fallback)
        if not result.changed:
            logger.info("No changes for VMI %s, returning original domain spec", vmi_spec.metadata.name)
            return domain_xml

        try:
            new_domain_xml = document.to_xml()
        except DomainEncodeError as e:
            logger.error("Failed to marshal updated domain spec %s: %s", document.name, e)
            self._fallback("domain_encode")
            return domain_xml

        for kind, count in result.changes.items():
            hook_mutations.labels(hook=self.hook.name, kind=kind).inc(count)
        logger.debug("updated before domain xml: %s", _text(domain_xml))
        logger.debug("updated after  domain xml: %s", _text(new_domain_xml))
        logger.info("Updated domain %s: %s", document.name, dict(result.changes))
        return new_domain_xml

    def pre_cloud_init_iso(self, cloud_init_data: bytes) -> bytes:
        """Pass the cloud-init data through; it is only decoded for logging."""
        logger.info("Hook's PreCloudInitIso callback method has been called")
        try:
            data = CloudInitData.model_validate_json(cloud_init_data)
        except ValidationError as e:
            logger.error("Failed to unmarshal given CloudInitData: %s (%s)", _text(cloud_init_data), e)
            self._fallback("descriptor_decode")
            return cloud_init_data

        logger.debug("Hook's PreCloudInitIso NetworkData: %s", data.network_data)
        logger.debug("Hook's PreCloudInitIso UserData: %s", data.user_data)
        return cloud_init_data
