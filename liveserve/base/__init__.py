from .config import LiveServeConfig, LogConfig, ServerConfig, get_config, set_config, setup_logging

__all__ = ["LiveServeConfig", "LogConfig", "ServerConfig", "get_config", "set_config", "setup_logging"]
