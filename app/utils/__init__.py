"""
Utility modules for the study buddy service.
"""
from .logging_config import setup_logging, log_performance, LogContext, RequestLoggingMiddleware

__all__ = ['setup_logging', 'log_performance', 'LogContext', 'RequestLoggingMiddleware']
