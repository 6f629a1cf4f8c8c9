#!/usr/bin/env python3
import asyncio, importlib, logging, sys
import grpc
from config.logging_config import configure
from config.app_config import settings
from smartfit.core import BreakerConfig, CircuitBreaker, BreakerEventBus, LoggingBreakerObserver
from smartfit.gateway import GrpcUserGateway, open_channel
from smartfit.services import UserService
from smartfit.server import UserServicer

log = logging.getLogger("user-service")

def load_proto():
    """Generated ``user_pb2`` / ``user_pb2_grpc`` modules of the gateway's proto."""
    messages = importlib.import_module(f"{settings.PROTO_PACKAGE}.user_pb2")
    services = importlib.import_module(f"{settings.PROTO_PACKAGE}.user_pb2_grpc")
    return messages, services

async def async_main():
    configure()
    messages, services = load_proto()

    bus = BreakerEventBus()
    bus.start()
    bus.attach(LoggingBreakerObserver())
    breaker = CircuitBreaker(BreakerConfig.from_settings(settings), on_state_change=bus)

    channel = open_channel(settings)
    gateway = GrpcUserGateway(services.UserServiceStub(channel), messages)
    service = UserService(gateway, breaker, call_timeout=settings.CALL_TIMEOUT)

    server = grpc.aio.server()
    services.add_UserServiceServicer_to_server(UserServicer(service, messages), server)
    server.add_insecure_port(f"[::]:{settings.SERVICE_PORT}")
    try:
        await server.start()
        log.info(f"User service listening on port {settings.SERVICE_PORT}")
        await server.wait_for_termination()
    finally:
        await server.stop(grace=5)
        await channel.close()
        await bus.stop()

if __name__ == "__main__":
    try:
        asyncio.run(async_main())
    except KeyboardInterrupt:
        sys.exit("graceful shutdown")
