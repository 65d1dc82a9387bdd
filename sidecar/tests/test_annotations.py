"""Unit tests for annotation decoding into device overlays."""

from __future__ import annotations

import json
import logging

from sidecar.annotations import (
    DEFAULT_USB_CONTROLLER_MODEL,
    DISK_IOTUNE_ANNOTATION,
    HOST_USB_CONTROLLER_ANNOTATION,
    HOST_USB_DEVICE_ANNOTATION,
    IFACE_BANDWIDTH_ANNOTATION,
    HostUsbOverlay,
    build_iothrottle_overlay,
    decode_bandwidth,
    decode_host_usb,
    decode_iothrottle,
)


# ---------------------------------------------------------------------------
# Disk I/O
# ---------------------------------------------------------------------------

class TestDecodeIOThrottle:

    def test_absent_annotation(self):
        assert decode_iothrottle({"other": "x"}) is None

    def test_empty_annotation(self):
        assert decode_iothrottle({DISK_IOTUNE_ANNOTATION: ""}) is None

    def test_decodes_fields(self):
        overlay = decode_iothrottle({
            DISK_IOTUNE_ANNOTATION: json.dumps(
                {"read_bytes_sec": "10485760", "read_iops_sec": "1000"}
            ),
        })
        assert overlay is not None
        assert overlay.fields == {"read_bytes_sec": "10485760", "read_iops_sec": "1000"}

    def test_malformed_json_logs_raw_value(self, caplog):
        with caplog.at_level(logging.ERROR):
            overlay = decode_iothrottle({DISK_IOTUNE_ANNOTATION: "{not json"})
        assert overlay is None
        assert "{not json" in caplog.text

    def test_non_string_values_reject_payload(self):
        overlay = decode_iothrottle({DISK_IOTUNE_ANNOTATION: '{"read_iops_sec": 1000}'})
        assert overlay is None

    def test_non_object_payload(self):
        assert decode_iothrottle({DISK_IOTUNE_ANNOTATION: '["read_iops_sec"]'}) is None


class TestBuildIOThrottleOverlay:

    def test_non_numeric_field_is_skipped_alone(self):
        overlay = build_iothrottle_overlay({"read_bytes_sec": "fast", "write_iops_sec": "200"})
        assert overlay.fields == {"write_iops_sec": "200"}

    def test_zero_and_empty_are_unset(self):
        overlay = build_iothrottle_overlay({"total_bytes_sec": "0", "read_bytes_sec": ""})
        assert overlay.fields == {}

    def test_sign_and_whitespace(self):
        overlay = build_iothrottle_overlay({"total_iops_sec": "+5", "read_iops_sec": " 7"})
        assert overlay.fields == {"total_iops_sec": "5"}

    def test_group_name_is_free_form(self):
        overlay = build_iothrottle_overlay({"group_name": "tenant-a"})
        assert overlay.fields == {"group_name": "tenant-a"}

    def test_unknown_keys_ignored(self):
        overlay = build_iothrottle_overlay({"read_bytes_per_day": "1", "size_iops_sec": "4096"})
        assert overlay.fields == {"size_iops_sec": "4096"}

    def test_fields_follow_catalogue_order(self):
        overlay = build_iothrottle_overlay({
            "read_iops_sec_max_length": "10",
            "group_name": "g",
            "write_bytes_sec": "2",
            "read_bytes_sec": "1",
        })
        assert list(overlay.fields) == [
            "read_bytes_sec",
            "write_bytes_sec",
            "group_name",
            "read_iops_sec_max_length",
        ]


# ---------------------------------------------------------------------------
# Interface bandwidth
# ---------------------------------------------------------------------------

class TestDecodeBandwidth:

    def test_absent_annotation(self):
        assert decode_bandwidth({}) is None

    def test_decodes_per_mac_entries(self):
        overlay = decode_bandwidth({
            IFACE_BANDWIDTH_ANNOTATION: json.dumps({
                "86:5d:c0:a8:64:dd": {"inbound": {"average": "1000"}},
                "86:5d:c0:a8:64:de": {"outbound": {"average": "10", "peak": "20"}},
            }),
        })
        assert overlay is not None
        first = overlay.for_mac("86:5d:c0:a8:64:dd")
        assert first.inbound_fields() == {"average": "1000"}
        assert first.outbound_fields() == {}
        second = overlay.for_mac("86:5d:c0:a8:64:de")
        assert second.outbound_fields() == {"average": "10", "peak": "20"}

    def test_lookup_is_exact_match(self):
        overlay = decode_bandwidth({
            IFACE_BANDWIDTH_ANNOTATION: json.dumps({"86:5d:c0:a8:64:dd": {"inbound": {"average": "1"}}}),
        })
        assert overlay.for_mac("86:5D:C0:A8:64:DD") is None
        assert overlay.for_mac("") is None

    def test_null_entries_dropped(self):
        overlay = decode_bandwidth({IFACE_BANDWIDTH_ANNOTATION: '{"02:00:00:00:00:01": null}'})
        assert overlay is not None
        assert overlay.entries == {}

    def test_empty_values_and_outbound_floor_ignored(self):
        overlay = decode_bandwidth({
            IFACE_BANDWIDTH_ANNOTATION: json.dumps({
                "02:00:00:00:00:01": {
                    "inbound": {"average": "", "floor": "5", "bogus": "1"},
                    "outbound": {"floor": "5", "burst": "32"},
                },
            }),
        })
        tune = overlay.for_mac("02:00:00:00:00:01")
        assert tune.inbound_fields() == {"floor": "5"}
        assert tune.outbound_fields() == {"burst": "32"}

    def test_malformed_payload(self, caplog):
        with caplog.at_level(logging.ERROR):
            assert decode_bandwidth({IFACE_BANDWIDTH_ANNOTATION: "average=1000"}) is None
        assert "average=1000" in caplog.text

    def test_numeric_rates_reject_payload(self):
        payload = json.dumps({"02:00:00:00:00:01": {"inbound": {"average": 1000}}})
        assert decode_bandwidth({IFACE_BANDWIDTH_ANNOTATION: payload}) is None


# ---------------------------------------------------------------------------
# Host USB
# ---------------------------------------------------------------------------

class TestDecodeHostUsb:

    def test_absent_annotation(self):
        assert decode_host_usb({}) is None

    def test_vendor_product(self):
        overlay = decode_host_usb({HOST_USB_DEVICE_ANNOTATION: "0951:1665"})
        assert overlay == HostUsbOverlay(
            vendor_id="0951", product_id="1665", controller_model=DEFAULT_USB_CONTROLLER_MODEL
        )

    def test_hex_prefixed_ids_kept_verbatim(self):
        overlay = decode_host_usb({HOST_USB_DEVICE_ANNOTATION: "0x0951:0x1665"})
        assert (overlay.vendor_id, overlay.product_id) == ("0x0951", "0x1665")

    def test_controller_model_override(self):
        overlay = decode_host_usb({
            HOST_USB_DEVICE_ANNOTATION: "0951:1665",
            HOST_USB_CONTROLLER_ANNOTATION: "qemu-xhci",
        })
        assert overlay.controller_model == "qemu-xhci"

    def test_empty_controller_model_uses_default(self):
        overlay = decode_host_usb({
            HOST_USB_DEVICE_ANNOTATION: "0951:1665",
            HOST_USB_CONTROLLER_ANNOTATION: "",
        })
        assert overlay.controller_model == "piix3-uhci"

    def test_rejects_wrong_token_count(self):
        assert decode_host_usb({HOST_USB_DEVICE_ANNOTATION: "bad-format"}) is None
        assert decode_host_usb({HOST_USB_DEVICE_ANNOTATION: "1:2:3"}) is None
        assert decode_host_usb({HOST_USB_DEVICE_ANNOTATION: ""}) is None
