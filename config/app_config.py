"""Centralised application settings (dotenv + env overrides)."""
from __future__ import annotations
import os
from pathlib import Path
from dotenv import load_dotenv

ROOT = Path(__file__).parents[1]
load_dotenv(ROOT / ".env", override=False)

class settings:                            # pylint: disable=too-few-public-methods
    DB_GATEWAY_ADDR        = os.getenv("DB_GATEWAY_ADDR", "db-gateway-service:8086")
    SERVICE_PORT           = int(os.getenv("SERVICE_PORT", 8082))
    PROTO_PACKAGE          = os.getenv("PROTO_PACKAGE", "proto")
    LOG_LEVEL              = os.getenv("LOG_LEVEL", "INFO").upper()

    # circuit breaker around the DB gateway
    BREAKER_NAME           = os.getenv("BREAKER_NAME", "DBGateway")
    BREAKER_MAX_REQUESTS   = int(os.getenv("BREAKER_MAX_REQUESTS", 3))
    BREAKER_INTERVAL       = float(os.getenv("BREAKER_INTERVAL", 10.0))       # seconds
    BREAKER_TIMEOUT        = float(os.getenv("BREAKER_TIMEOUT", 30.0))        # seconds
    BREAKER_MIN_REQUESTS   = int(os.getenv("BREAKER_MIN_REQUESTS", 3))
    BREAKER_FAILURE_RATIO  = float(os.getenv("BREAKER_FAILURE_RATIO", 0.6))

    # per-call deadline and channel tuning
    CALL_TIMEOUT           = float(os.getenv("CALL_TIMEOUT", 5.0))            # seconds
    GRPC_KEEPALIVE_TIME    = float(os.getenv("GRPC_KEEPALIVE_TIME", 10.0))    # seconds
    GRPC_KEEPALIVE_TIMEOUT = float(os.getenv("GRPC_KEEPALIVE_TIMEOUT", 3.0))  # seconds
    GRPC_MAX_MESSAGE_BYTES = int(os.getenv("GRPC_MAX_MESSAGE_BYTES", 10 * 1024 * 1024))
