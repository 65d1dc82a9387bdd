"""KubeVirt hook sidecar entry point.

Serves one hook (selected by ``SIDECAR_HOOK_NAME``) over gRPC on a unix
socket in the directory virt-launcher scans for hook sockets:

- ``kubevirt.hooks.info.Info/Info``
- ``kubevirt.hooks.<version>.Callbacks/OnDefineDomain``
- ``kubevirt.hooks.v1alpha2.Callbacks/PreCloudInitIso``

When ``SIDECAR_OPS_PORT`` is set, ``GET /health`` and ``GET /metrics`` are
served over HTTP on that port as well.
"""

from __future__ import annotations

import logging
import signal
from contextlib import asynccontextmanager, contextmanager
from pathlib import Path
from typing import Iterator

import grpc
import uvicorn
from fastapi import FastAPI, Response

from sidecar.adapter import HookServiceAdapter
from sidecar.config import settings
from sidecar.errors import SocketSetupError
from sidecar.hooks import Hook, get_hook
from sidecar.logging_config import setup_sidecar_logging
from sidecar.metrics import get_metrics
from sidecar.server import bind_hook_socket, create_server
from sidecar.version import __version__

# Configure structured logging at module load
setup_sidecar_logging(settings.hook_name)

logger = logging.getLogger(__name__)


# --- Socket lifecycle ---

def socket_path(hook: Hook, sockets_dir: str | None = None) -> Path:
    return Path(sockets_dir or settings.hook_sockets_dir) / hook.socket_name


@contextmanager
def hook_socket(path: Path) -> Iterator[str]:
    """Reserve *path* for the hook socket and remove the file when done.

    Yields the ``unix:`` address to bind the gRPC server to.

    Raises:
        SocketSetupError: if the directory is missing or the path is taken
    """
    if not path.parent.is_dir():
        raise SocketSetupError(f"Hook sockets directory {path.parent} does not exist")
    if path.exists() or path.is_symlink():
        raise SocketSetupError(f"Socket path {path} is already taken by another file")

    try:
        yield f"unix:{path}"
    finally:
        path.unlink(missing_ok=True)
        logger.info("Removed hook socket %s", path)


# --- Ops endpoint ---

def create_app(adapter: HookServiceAdapter) -> FastAPI:
    """Build the HTTP app exposing health and metrics for *adapter*'s hook."""
    hook = adapter.hook

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Ops endpoint for %s starting", hook.name)
        yield
        logger.info("Ops endpoint for %s shutting down", hook.name)

    app = FastAPI(
        title=f"KubeVirt hook sidecar ({hook.name})",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.adapter = adapter

    @app.get("/health")
    def health():
        """Basic health check."""
        return {
            "status": "ok",
            "hook": hook.name,
            "versions": hook.versions,
            "version": __version__,
        }

    @app.get("/metrics")
    def metrics():
        """Prometheus metrics endpoint."""
        body, content_type = get_metrics()
        return Response(content=body, media_type=content_type)

    return app


# --- Serving ---

def wait_for_shutdown(server: grpc.Server, adapter: HookServiceAdapter) -> None:
    """Block until the process is asked to stop."""
    if settings.ops_port:
        # uvicorn owns SIGINT/SIGTERM while it runs
        config = uvicorn.Config(
            create_app(adapter),
            host=settings.ops_host,
            port=settings.ops_port,
            log_config=None,
        )
        uvicorn.Server(config).run()
        return

    signal.signal(
        signal.SIGTERM,
        lambda signum, frame: server.stop(settings.shutdown_grace_seconds),
    )
    try:
        server.wait_for_termination()
    except KeyboardInterrupt:
        logger.info("Interrupted")


def run() -> None:
    """Serve the configured hook until interrupted."""
    hook = get_hook(settings.hook_name, settings)
    adapter = HookServiceAdapter(hook)
    path = socket_path(hook)
    try:
        with hook_socket(path) as address:
            server = create_server(adapter)
            bind_hook_socket(server, address)
            server.start()
            logger.info(
                "Starting hook sidecar server exposing 'info' and %s services on socket %s",
                ", ".join(repr(v) for v in hook.callback_versions),
                path,
            )
            try:
                wait_for_shutdown(server, adapter)
            finally:
                server.stop(settings.shutdown_grace_seconds).wait()
                logger.info("Hook sidecar %s stopped", hook.name)
    except SocketSetupError as e:
        logger.error("%s", e)
        logger.error(
            "Check whether given directory exists and socket name is not already taken by other file"
        )
        raise SystemExit(1) from e


# --- Entry point ---

if __name__ == "__main__":
    run()
