"""
metrics.py — Request Metrics Emission

Every metric is logged; when `METRICS_ENDPOINT` is configured it is also pushed
to the collector as JSON. Emission never raises: a lost metric must not change
the outcome of the request that produced it.
"""

import logging

import httpx

from . import config

log = logging.getLogger(__name__)


def status_class(status_code: int) -> str:
    """Coarse outcome classification used as the `Status` dimension."""
    if status_code >= 500:
        return "5xx"
    if status_code >= 400:
        return "4xx"
    return "2xx"


class MetricsClient:
    """
    Pushes metric data points to a collector endpoint.

    Args:
        endpoint (str, optional): Collector URL. Without one, metrics are only logged.
        namespace (str, optional): Metric namespace, defaults to `METRICS_NAMESPACE`.
        environment (str, optional): Value of the `Environment` dimension.
        http_client (httpx.Client, optional): Preconfigured client (e.g. for tests).
    """

    def __init__(self, endpoint=None, namespace=None, environment=None, http_client=None):
        self.endpoint = endpoint if endpoint is not None else config.METRICS_ENDPOINT
        self.namespace = namespace or config.METRICS_NAMESPACE
        self.environment = environment or config.APP_ENV
        self.client = http_client or httpx.Client(timeout=httpx.Timeout(2.0))

    def log_metric(self, name: str, value: float, unit: str, dimensions: dict = None) -> bool:
        """
        Emits one metric data point.

        Returns:
            bool: True if the metric was delivered (or only logging is configured),
                False if pushing it failed.
        """
        dimensions = {"Environment": self.environment, **(dimensions or {})}
        log.info(f"[METRIC - {self.environment}] {name}: {value} {unit} {dimensions}")
        if not self.endpoint:
            return True

        payload = {
            "Namespace": self.namespace,
            "MetricData": [{
                "MetricName": name,
                "Dimensions": [{"Name": key, "Value": str(val)} for key, val in dimensions.items()],
                "Unit": unit,
                "Value": value,
            }],
        }
        try:
            response = self.client.post(self.endpoint, json=payload)
            response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            log.error(f"Could not push metric {name}: {e}")
            return False

    def record_request(self, endpoint: str, duration_ms: float, status_code: int):
        """Emits the execution time and the outcome count of one request."""
        self.log_metric("ExecutionTime", duration_ms, "Milliseconds", {"Endpoint": endpoint})
        self.log_metric("RequestCount", 1, "Count", {"Status": status_class(status_code)})
