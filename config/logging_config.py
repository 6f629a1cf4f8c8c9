"""Rich-handler logging preset for the user service."""
import logging
from typing import Optional
from rich.logging import RichHandler
from .app_config import settings

def configure(level: Optional[str] = None):
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper()),
        format="%(name)-28s │ %(message)s",
        datefmt="%H:%M:%S",
        handlers=[RichHandler(rich_tracebacks=True, markup=False, show_path=False)],
    )
    # breaker transitions stay visible even when the service runs at WARNING
    logging.getLogger("CircuitBreaker").setLevel(logging.INFO)
    logging.getLogger("grpc").setLevel(logging.WARNING)
