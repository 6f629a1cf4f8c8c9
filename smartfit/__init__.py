"""SmartFit user service - breaker-guarded access to the database gateway"""

__version__ = '1.0.0'
__description__ = 'User service with a circuit breaker around the DB gateway RPC boundary'

# Core patterns - most fundamental
from .core import CircuitBreaker, BreakerConfig, BreakerState, ErrorKind, ServiceError

# Models - domain objects
from .models import User, VerifyResult

# Gateway client
from .gateway import UserGateway, GrpcUserGateway

# Services - business logic
from .services import UserService

# gRPC surface
from .server import UserServicer

__all__ = [
    # Core
    'CircuitBreaker',
    'BreakerConfig',
    'BreakerState',
    'ErrorKind',
    'ServiceError',

    # Models
    'User',
    'VerifyResult',

    # Gateway
    'UserGateway',
    'GrpcUserGateway',

    # Services
    'UserService',
    'UserServicer',
]
