"""Tests for OTELExporter."""

import pytest
from unittest.mock import MagicMock

from rollout.infrastructure.telemetry import OTELConfig, OTELExporter, create_exporter


class TestOTELConfig:
    def test_default_empty_endpoint(self):
        assert OTELConfig().endpoint == ""
        assert OTELConfig().service_name == "rollout"

    def test_localhost_http_allowed(self):
        config = OTELConfig(endpoint="http://localhost:4317")
        assert config.endpoint == "http://localhost:4317"

    def test_remote_https_allowed(self):
        config = OTELConfig(endpoint="https://otel.example.com:4317")
        assert config.endpoint == "https://otel.example.com:4317"

    def test_remote_http_rejected(self):
        with pytest.raises(ValueError, match="insecure=True"):
            OTELConfig(endpoint="http://otel.example.com:4317")

    def test_remote_http_with_insecure(self):
        config = OTELConfig(endpoint="http://otel.example.com:4317", insecure=True)
        assert config.insecure is True


class TestOTELExporter:
    def test_record_metric_buffers(self):
        exporter = OTELExporter(OTELConfig())
        exporter.record_metric("test.metric", 42.0)
        assert len(exporter._metrics_buffer) == 1
        assert exporter._metrics_buffer[0]["name"] == "test.metric"
        assert exporter._metrics_buffer[0]["value"] == 42.0

    def test_record_stage(self):
        exporter = OTELExporter(OTELConfig())
        exporter.record_stage("cloning", True, 150.0, 3)
        metric = exporter._metrics_buffer[0]
        assert metric["name"] == "rollout.stage.duration_ms"
        assert metric["unit"] == "ms"
        assert metric["attributes"] == {"stage": "cloning", "success": "True", "hosts": "3"}

    def test_record_deployment(self):
        exporter = OTELExporter(OTELConfig())
        exporter.record_deployment(False, "promoting", True)
        metric = exporter._metrics_buffer[0]
        assert metric["value"] == 0.0
        assert metric["attributes"] == {"stage": "promoting", "fatal": "True"}

    def test_initialized_records_histogram(self):
        exporter = OTELExporter(OTELConfig())
        exporter._initialized = True
        exporter._meter = MagicMock()
        exporter.record_metric("rollout.stage.duration_ms", 10.0, unit="ms")
        exporter.record_metric("rollout.stage.duration_ms", 20.0, unit="ms")
        exporter._meter.create_histogram.assert_called_once_with(
            "rollout.stage.duration_ms", unit="ms"
        )
        assert exporter._meter.create_histogram.return_value.record.call_count == 2

    @pytest.mark.asyncio
    async def test_export_noop_when_not_initialized(self):
        exporter = OTELExporter(OTELConfig())
        exporter.record_metric("test", 1.0)
        await exporter.export()
        assert len(exporter._metrics_buffer) == 1

    @pytest.mark.asyncio
    async def test_export_clears_buffer_when_initialized(self):
        exporter = OTELExporter(OTELConfig())
        exporter._initialized = True
        exporter.record_metric("test", 1.0)
        await exporter.export()
        assert exporter._metrics_buffer == []

    @pytest.mark.asyncio
    async def test_initialize_without_endpoint(self):
        exporter = OTELExporter(OTELConfig())
        await exporter.initialize()
        assert exporter._initialized is False

    def test_start_span_not_initialized(self):
        assert OTELExporter(OTELConfig()).start_span("rollout.cloning") is None

    def test_end_span(self):
        span = MagicMock()
        OTELExporter(OTELConfig()).end_span(span)
        span.end.assert_called_once()
        OTELExporter(OTELConfig()).end_span(None)


class TestCreateExporter:
    def test_uninitialized(self):
        exporter = create_exporter(endpoint="https://otel.example.com:4317", service_name="shop")
        assert exporter.config.service_name == "shop"
        assert exporter._initialized is False

    def test_rejects_plaintext_remote(self):
        with pytest.raises(ValueError):
            create_exporter(endpoint="http://otel.example.com:4317")
