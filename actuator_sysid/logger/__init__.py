from .logger import DedupFilter, Logger, ROOT_LOGGER_NAME

__all__ = ["DedupFilter", "Logger", "ROOT_LOGGER_NAME"]
