"""Sidecar configuration."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Sidecar settings loaded from environment variables."""

    # Which hook this process serves (see sidecar.hooks)
    hook_name: str = "ksv"
    # Hook API version advertised by Info (hostusb only)
    hook_version: str = "v1alpha2"

    # Directory shared with virt-launcher where hook sockets live
    hook_sockets_dir: str = "/var/run/kubevirt-hooks"

    # gRPC server on the hook socket
    grpc_max_workers: int = 4
    shutdown_grace_seconds: float = 5.0

    # Optional HTTP endpoint for /health and /metrics (0 disables it)
    ops_host: str = "0.0.0.0"
    ops_port: int = 0

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"  # "text" or "json"

    class Config:
        env_prefix = "SIDECAR_"


settings = Settings()
