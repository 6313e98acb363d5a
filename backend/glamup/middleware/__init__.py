"""HTTP middleware for GlamUp."""

from .prometheus_middleware import PrometheusMiddleware

__all__ = ["PrometheusMiddleware"]
