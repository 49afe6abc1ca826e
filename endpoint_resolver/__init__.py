from .client import EndpointResolver
from .config import ResolverConfig
from .generator import ResolverState, ServiceConfigGenerator

__all__ = ["EndpointResolver", "ResolverConfig", "ResolverState", "ServiceConfigGenerator"]
