"""Utility modules for the assessment pipeline."""
from .logger import PipelineLogger, LogLevel, create_logger, PerformanceTimer

__all__ = [
    'PipelineLogger',
    'LogLevel',
    'create_logger',
    'PerformanceTimer'
]
