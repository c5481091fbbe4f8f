"""Base command and event interfaces shared across services."""

from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict


@dataclass
class Command:
    """Base class for all commands."""
    pass

@dataclass
class Event:
    """Base class for all domain events."""

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict with datetimes as ISO strings and enums as their values."""
        event_dict = asdict(self)
        for key, value in event_dict.items():
            if isinstance(value, datetime):
                event_dict[key] = value.isoformat()
            elif isinstance(value, Enum):
                event_dict[key] = value.value
        event_dict["event_name"] = type(self).__name__
        return event_dict
