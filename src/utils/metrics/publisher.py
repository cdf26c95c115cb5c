"""
Prometheus HTTP exposition for validation metrics.
"""

import logging

from prometheus_client import REGISTRY, CollectorRegistry, Info, start_http_server

logger = logging.getLogger(__name__)


class MetricsPublisher:
    """
    Serves the registry on ``/metrics``

    The HTTP server runs in a daemon thread for the life of the process.
    """

    def __init__(
        self,
        port: int = 9108,
        registry: CollectorRegistry | None = None,
        app_name: str = "data-fingerprint-validator",
        version: str = "1.0.0",
    ):
        self.port = port
        self.registry = registry or REGISTRY
        self.app_name = app_name
        self.version = version
        self._server_started = False

    def start(self) -> None:
        """
        Start the metrics HTTP server

        Raises:
            RuntimeError: If the port is already in use
        """
        if self._server_started:
            logger.warning(f"Metrics server already running on port {self.port}")
            return

        try:
            start_http_server(self.port, registry=self.registry)
        except OSError as e:
            raise RuntimeError(
                f"Metrics server port {self.port} is unavailable: {e}. "
                f"Stop the conflicting process or choose a different --metrics-port."
            ) from e

        Info("validator", "Validator build information", registry=self.registry).info(
            {"name": self.app_name, "version": self.version}
        )
        self._server_started = True
        logger.info(f"Metrics server started on port {self.port}")

    def is_started(self) -> bool:
        return self._server_started
