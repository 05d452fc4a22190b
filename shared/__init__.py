"""Infrastructure utilities used by the taskboard service."""

from .config import AuthConfig, ServiceConfig, load_service_config
from .cors import configure_cors
from .event_consumer import EventConsumer, cleanup_consumer
from .health import create_health_router
from .logging import RequestContextLogMiddleware, bind_request_log_context, client_ip, configure_logging
from .messaging import EventPublisher, create_event_publisher
from .startup import init_database

__all__ = [
    "AuthConfig",
    "ServiceConfig",
    "load_service_config",
    "configure_cors",
    "EventConsumer",
    "cleanup_consumer",
    "create_health_router",
    "RequestContextLogMiddleware",
    "bind_request_log_context",
    "client_ip",
    "configure_logging",
    "EventPublisher",
    "create_event_publisher",
    "init_database",
]
