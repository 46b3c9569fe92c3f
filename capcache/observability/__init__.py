"""
Observability for the AEMET CAP cache: loguru logging, Prometheus
metrics and the FastAPI HTTP surface.
"""
