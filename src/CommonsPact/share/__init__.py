from .ApiScheduler import APIScheduler
from .BaseDto import BaseDto
from .CommonsPactBot import CommonsPactBot
from .DatabaseHandler import DatabaseHandler
from .LoggingConfigurator import LoggingConfigurator
from .StringUtils import StringUtils
from .TimeUtils import TimeUtils
from .UnitOfWork import UnitOfWork

__all__ = [
    "APIScheduler",
    "BaseDto",
    "CommonsPactBot",
    "DatabaseHandler",
    "LoggingConfigurator",
    "StringUtils",
    "TimeUtils",
    "UnitOfWork",
]
