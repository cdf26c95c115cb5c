"""
Shared operational utilities

Provides:
- logging: Console/JSON logging setup and ContextLogger
- tracing: OpenTelemetry spans
- metrics: Prometheus metrics and exposition
- vault_client: HashiCorp Vault integration for database credentials
"""

__version__ = "1.0.0"
__all__ = ["logging", "tracing", "metrics", "vault_client"]
