"""Inbound gRPC surface."""

from .grpc_server import UserServicer

__all__ = ['UserServicer']
