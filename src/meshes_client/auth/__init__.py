"""Authentication strategies for the Meshes API."""
from .base import AuthStrategy, TokenSigner
from .jwt import HS256Signer, MachineTokenAuth

__all__ = ["AuthStrategy", "TokenSigner", "HS256Signer", "MachineTokenAuth"]
