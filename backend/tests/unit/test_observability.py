"""Unit tests for request IDs, JSON log records and health aggregation"""

import json
import logging

import pytest

from observability.health import (
    ComponentHealth,
    HealthReport,
    HealthStatus,
    check_object_storage_health,
)
from observability.logging_config import JSONFormatter
from observability.request_id import resolve_request_id, set_request_id


class TestRequestId:

    def test_plain_inbound_id_is_kept(self):
        assert resolve_request_id("lb-7f3a:42") == "lb-7f3a:42"

    @pytest.mark.parametrize("inbound", [None, "", "has space", "x" * 129, "line\nbreak"])
    def test_unusable_inbound_id_is_replaced(self, inbound):
        generated = resolve_request_id(inbound)
        assert generated != inbound
        assert len(generated) == 32


class TestJSONFormatter:

    def test_context_fields_become_keys(self):
        set_request_id("req-9")
        record = logging.LogRecord("documents.service", logging.INFO, __file__, 1, "Document created", None, None)
        record.request_id = "req-9"
        record.document_id = "d-1"
        record.credits = 3

        payload = json.loads(JSONFormatter().format(record))

        assert payload["message"] == "Document created"
        assert payload["request_id"] == "req-9"
        assert payload["document_id"] == "d-1"
        assert payload["credits"] == 3
        assert "company_id" not in payload


class TestHealthReport:

    def test_all_healthy(self):
        report = HealthReport({"database": ComponentHealth(HealthStatus.HEALTHY)})
        assert report.status == HealthStatus.HEALTHY
        assert report.http_status == 200

    def test_unhealthy_wins_over_degraded(self):
        report = HealthReport({
            "database": ComponentHealth(HealthStatus.DEGRADED),
            "object_storage": ComponentHealth(HealthStatus.UNHEALTHY, "Bucket not accessible"),
        })
        assert report.status == HealthStatus.UNHEALTHY
        assert report.http_status == 503
        assert report.to_dict()["components"]["object_storage"]["message"] == "Bucket not accessible"

    def test_degraded_still_serves(self):
        report = HealthReport({"database": ComponentHealth(HealthStatus.DEGRADED)})
        assert report.http_status == 200


class TestStorageProbe:

    async def test_probe_error_is_unhealthy(self):
        async def probe():
            raise ConnectionError("endpoint unreachable")

        result = await check_object_storage_health(probe)

        assert result.status == HealthStatus.UNHEALTHY
        assert "endpoint unreachable" in result.message

    async def test_reachable_bucket(self):
        async def probe():
            return True

        result = await check_object_storage_health(probe)

        assert result.status == HealthStatus.HEALTHY
        assert result.latency_ms is not None
