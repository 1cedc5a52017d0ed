from .domain import Domain
from .activity import Activity
from .log_entry import LogEntry

__all__ = [
    "Domain",
    "Activity",
    "LogEntry",
]
