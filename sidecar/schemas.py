"""Hook data models.

The capability descriptor a hook reports through Info, and the two
documents the callbacks receive: the VirtualMachineInstance and the
cloud-init data. The gRPC wire messages live in ``sidecar.hookapi``.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HookPointName(str, Enum):
    """Lifecycle points virt-launcher can call a hook at."""
    ON_DEFINE_DOMAIN = "OnDefineDomain"
    PRE_CLOUD_INIT_ISO = "PreCloudInitIso"


# --- Info ---

class HookPoint(BaseModel):
    name: HookPointName
    priority: int = 0


class InfoResult(BaseModel):
    """Capabilities a hook advertises to virt-launcher."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    versions: list[str] = Field(default_factory=list)
    hook_points: list[HookPoint] = Field(default_factory=list, alias="hookPoints")


# --- Documents carried by the callbacks ---

class ObjectMeta(BaseModel):
    """The slice of Kubernetes object metadata the hooks read."""
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    namespace: str = ""
    annotations: dict[str, str] = Field(default_factory=dict)

    @field_validator("annotations", mode="before")
    @classmethod
    def _null_annotations(cls, value):
        # Kubernetes serializes an empty map as null
        return {} if value is None else value


class VirtualMachineInstance(BaseModel):
    """VMI as serialized by virt-launcher; only metadata is consumed."""
    model_config = ConfigDict(extra="allow")

    metadata: ObjectMeta = Field(default_factory=ObjectMeta)


class CloudInitData(BaseModel):
    """Cloud-init payload passed to PreCloudInitIso (logged, never modified)."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    data_source: str = Field(default="", alias="DataSource")
    user_data: str = Field(default="", alias="UserData")
    network_data: str = Field(default="", alias="NetworkData")
