"""Protobuf messages of the KubeVirt hook API.

Mirrors KubeVirt's ``api_info.proto``, ``api_v1alpha1.proto`` and
``api_v1alpha2.proto``::

    package kubevirt.hooks.info;
    service Info { rpc Info(InfoParams) returns (InfoResult); }
    message InfoParams { repeated string supportedVersions = 1; }
    message InfoResult {
      string name = 1;
      repeated string versions = 2;
      repeated HookPoint hookPoints = 3;
    }
    message HookPoint { string name = 1; int32 priority = 2; }

    package kubevirt.hooks.v1alpha2;
    service Callbacks {
      rpc OnDefineDomain(OnDefineDomainParams) returns (OnDefineDomainResult);
      rpc PreCloudInitIso(PreCloudInitIsoParams) returns (PreCloudInitIsoResult);
    }
    message OnDefineDomainParams { bytes domainXML = 1; bytes vmi = 2; }
    message OnDefineDomainResult { bytes domainXML = 1; }
    message PreCloudInitIsoParams { bytes cloudInitData = 1; bytes vmi = 2; }
    message PreCloudInitIsoResult { bytes cloudInitData = 1; }

``v1alpha1`` is ``v1alpha2`` without PreCloudInitIso. The descriptors are
declared here and loaded into a private descriptor pool, which gives the
same message classes and wire format as protoc-generated ``*_pb2`` modules.
"""

from __future__ import annotations

from dataclasses import dataclass

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

_Field = descriptor_pb2.FieldDescriptorProto

INFO_PACKAGE = "kubevirt.hooks.info"
INFO_SERVICE = f"{INFO_PACKAGE}.Info"

_pool = descriptor_pool.DescriptorPool()


def _field(
    name: str,
    number: int,
    type_: int,
    *,
    repeated: bool = False,
    type_name: str = "",
) -> _Field:
    field = _Field(
        name=name,
        number=number,
        type=type_,
        label=_Field.LABEL_REPEATED if repeated else _Field.LABEL_OPTIONAL,
        json_name=name,
    )
    if type_name:
        field.type_name = type_name
    return field


def _load(
    filename: str,
    package: str,
    messages: dict[str, list[_Field]],
    service: str,
    methods: dict[str, tuple[str, str]],
) -> dict[str, type]:
    """Register one proto file in the pool and build its message classes."""
    proto = descriptor_pb2.FileDescriptorProto(name=filename, package=package, syntax="proto3")
    for message_name, fields in messages.items():
        proto.message_type.add(name=message_name).field.extend(fields)
    service_proto = proto.service.add(name=service)
    for method, (input_type, output_type) in methods.items():
        service_proto.method.add(
            name=method,
            input_type=f".{package}.{input_type}",
            output_type=f".{package}.{output_type}",
        )

    _pool.AddSerializedFile(proto.SerializeToString())
    return {
        name: message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{package}.{name}"))
        for name in messages
    }


# --- kubevirt.hooks.info ---

_info = _load(
    "kubevirt/hooks/api_info.proto",
    INFO_PACKAGE,
    {
        "InfoParams": [
            _field("supportedVersions", 1, _Field.TYPE_STRING, repeated=True),
        ],
        "InfoResult": [
            _field("name", 1, _Field.TYPE_STRING),
            _field("versions", 2, _Field.TYPE_STRING, repeated=True),
            _field(
                "hookPoints", 3, _Field.TYPE_MESSAGE,
                repeated=True, type_name=f".{INFO_PACKAGE}.HookPoint",
            ),
        ],
        "HookPoint": [
            _field("name", 1, _Field.TYPE_STRING),
            _field("priority", 2, _Field.TYPE_INT32),
        ],
    },
    "Info",
    {"Info": ("InfoParams", "InfoResult")},
)

InfoParams = _info["InfoParams"]
InfoResult = _info["InfoResult"]
HookPoint = _info["HookPoint"]


# --- kubevirt.hooks.v1alpha1 / v1alpha2 ---

@dataclass(frozen=True)
class CallbacksApi:
    """One versioned ``Callbacks`` service and its message classes."""

    version: str
    messages: dict[str, type]
    methods: tuple[str, ...]

    @property
    def service(self) -> str:
        return f"kubevirt.hooks.{self.version}.Callbacks"

    def params(self, method: str) -> type:
        return self.messages[f"{method}Params"]

    def result(self, method: str) -> type:
        return self.messages[f"{method}Result"]


def _callbacks(version: str, methods: tuple[str, ...]) -> CallbacksApi:
    package = f"kubevirt.hooks.{version}"
    messages = {
        "OnDefineDomainParams": [
            _field("domainXML", 1, _Field.TYPE_BYTES),
            _field("vmi", 2, _Field.TYPE_BYTES),
        ],
        "OnDefineDomainResult": [
            _field("domainXML", 1, _Field.TYPE_BYTES),
        ],
    }
    if "PreCloudInitIso" in methods:
        messages["PreCloudInitIsoParams"] = [
            _field("cloudInitData", 1, _Field.TYPE_BYTES),
            _field("vmi", 2, _Field.TYPE_BYTES),
        ]
        messages["PreCloudInitIsoResult"] = [
            _field("cloudInitData", 1, _Field.TYPE_BYTES),
        ]
    classes = _load(
        f"kubevirt/hooks/api_{version}.proto",
        package,
        messages,
        "Callbacks",
        {method: (f"{method}Params", f"{method}Result") for method in methods},
    )
    return CallbacksApi(version=version, messages=classes, methods=methods)


CALLBACKS: dict[str, CallbacksApi] = {
    "v1alpha1": _callbacks("v1alpha1", ("OnDefineDomain",)),
    "v1alpha2": _callbacks("v1alpha2", ("OnDefineDomain", "PreCloudInitIso")),
}
