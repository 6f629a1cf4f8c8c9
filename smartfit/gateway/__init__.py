"""Client side of the database gateway boundary."""

from .client import UserGateway, GrpcUserGateway, channel_options, open_channel

__all__ = [
    'UserGateway',
    'GrpcUserGateway',
    'channel_options',
    'open_channel',
]
