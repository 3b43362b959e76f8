"""Server composition: lifecycle protocol, HTTP listener, TLS, and the WebServer orchestrator."""

from .component import Component, RequestHandler
from .http import HttpServer
from .orchestrator import ServerStats, WebServer, validate_config
from .tls import load_ssl_context

__all__ = [
    "Component",
    "RequestHandler",
    "HttpServer",
    "ServerStats",
    "WebServer",
    "validate_config",
    "load_ssl_context",
]
