"""Per-tick telemetry samples and aggregates for graphs and tuning."""

from line_follower.telemetry.collector import TelemetryCollector, TelemetrySample

__all__ = ["TelemetryCollector", "TelemetrySample"]
