"""Prometheus metrics for the packaging pipeline and token service."""

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    Info,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

# Create a custom registry for our metrics
REGISTRY = CollectorRegistry()


# ============================================
# Application Info
# ============================================
APP_INFO = Info(
    "streamgate_app",
    "Application information",
    registry=REGISTRY,
)


# ============================================
# HTTP Request Metrics
# ============================================
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
    registry=REGISTRY,
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=REGISTRY,
)


# ============================================
# Packaging Pipeline Metrics
# ============================================
PIPELINE_RUNS_TOTAL = Counter(
    "packaging_pipeline_runs_total",
    "Upload pipelines by outcome",
    ["outcome"],
    registry=REGISTRY,
)

PIPELINE_STAGE_DURATION_SECONDS = Histogram(
    "packaging_stage_duration_seconds",
    "Duration of each pipeline stage in seconds",
    ["stage"],
    buckets=[0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0, 1800.0],
    registry=REGISTRY,
)

ENCODES_IN_PROGRESS = Gauge(
    "packaging_encodes_in_progress",
    "Encoder processes currently running",
    registry=REGISTRY,
)


# ============================================
# URI Signing Metrics
# ============================================
TOKENS_ISSUED_TOTAL = Counter(
    "uri_signing_tokens_issued_total",
    "Total signed playback tokens issued",
    registry=REGISTRY,
)

TOKEN_VERIFICATIONS_TOTAL = Counter(
    "uri_signing_token_verifications_total",
    "Token verifications by outcome",
    ["outcome"],
    registry=REGISTRY,
)


def get_metrics() -> bytes:
    """Generate latest metrics in Prometheus format."""
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST


def set_app_info(version: str, environment: str) -> None:
    """Set application info metrics.
    
    Args:
        version: Application version
        environment: Deployment environment
    """
    APP_INFO.info({
        "version": version,
        "environment": environment,
    })
