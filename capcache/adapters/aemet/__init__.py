from .client import AemetClient

__all__ = ["AemetClient"]
