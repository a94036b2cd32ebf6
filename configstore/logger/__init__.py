"""Logger module for configstore."""

from configstore.logger.logger import Logger, get_logger, init_logger
from configstore.logger.postgres_writer import PostgresWriter
from configstore.logger.types import Category, Field, Level, LogEntry

__all__ = [
    "Logger",
    "get_logger",
    "init_logger",
    "PostgresWriter",
    "Category",
    "Level",
    "LogEntry",
    "Field",
]
