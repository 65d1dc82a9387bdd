"""gRPC services virt-launcher calls on the hook socket.

``kubevirt.hooks.info.Info/Info`` is always served; one
``kubevirt.hooks.<version>.Callbacks`` service is registered per callback
version the hook supports. Every call is handed to the hook's
:class:`~sidecar.adapter.HookServiceAdapter`.
"""

from __future__ import annotations

import logging
from concurrent import futures

import grpc

from sidecar import hookapi
from sidecar.adapter import HookServiceAdapter
from sidecar.config import settings
from sidecar.errors import SocketSetupError

logger = logging.getLogger(__name__)


class InfoServicer:
    def __init__(self, adapter: HookServiceAdapter):
        self.adapter = adapter

    def Info(self, request, context):
        logger.debug("virt-launcher supports hook versions %s", list(request.supportedVersions))
        info = self.adapter.dispatch("Info")
        return hookapi.InfoResult(
            name=info.name,
            versions=info.versions,
            hookPoints=[
                hookapi.HookPoint(name=point.name.value, priority=point.priority)
                for point in info.hook_points
            ],
        )


class CallbacksServicer:
    def __init__(self, adapter: HookServiceAdapter, api: hookapi.CallbacksApi):
        self.adapter = adapter
        self.api = api

    def OnDefineDomain(self, request, context):
        domain_xml = self.adapter.dispatch("OnDefineDomain", request.vmi, request.domainXML)
        return self.api.result("OnDefineDomain")(domainXML=domain_xml)

    def PreCloudInitIso(self, request, context):
        data = self.adapter.dispatch("PreCloudInitIso", request.cloudInitData)
        return self.api.result("PreCloudInitIso")(cloudInitData=data)


def _generic_handler(
    service: str, servicer, messages: dict[str, tuple[type, type]]
) -> grpc.GenericRpcHandler:
    return grpc.method_handlers_generic_handler(
        service,
        {
            method: grpc.unary_unary_rpc_method_handler(
                getattr(servicer, method),
                request_deserializer=params.FromString,
                response_serializer=result.SerializeToString,
            )
            for method, (params, result) in messages.items()
        },
    )


def add_hook_services(server: grpc.Server, adapter: HookServiceAdapter) -> None:
    """Register Info and the hook's Callbacks services on *server*."""
    handlers = [
        _generic_handler(
            hookapi.INFO_SERVICE,
            InfoServicer(adapter),
            {"Info": (hookapi.InfoParams, hookapi.InfoResult)},
        )
    ]
    for version in adapter.hook.callback_versions:
        api = hookapi.CALLBACKS[version]
        handlers.append(
            _generic_handler(
                api.service,
                CallbacksServicer(adapter, api),
                {method: (api.params(method), api.result(method)) for method in api.methods},
            )
        )
    server.add_generic_rpc_handlers(tuple(handlers))


def create_server(adapter: HookServiceAdapter, max_workers: int | None = None) -> grpc.Server:
    server = grpc.server(
        futures.ThreadPoolExecutor(max_workers=max_workers or settings.grpc_max_workers)
    )
    add_hook_services(server, adapter)
    return server


def bind_hook_socket(server: grpc.Server, address: str) -> None:
    """Listen on a ``unix:`` *address*.

    Raises:
        SocketSetupError: if gRPC cannot bind the address
    """
    try:
        server.add_insecure_port(address)
    except RuntimeError as e:
        raise SocketSetupError(f"Failed to initialize socket on {address}: {e}") from e
