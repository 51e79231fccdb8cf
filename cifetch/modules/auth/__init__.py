from .auth import Credentials, Deadline, RegistryAuth, TransportPolicy, get_auth

__all__ = ["Credentials", "Deadline", "RegistryAuth", "TransportPolicy", "get_auth"]
