"""High-level Meshes API client entrypoints."""
from .client import MeshesApiClient
from .config import ClientConfig
from .exceptions import MeshesApiError

__all__ = ["MeshesApiClient", "ClientConfig", "MeshesApiError"]
