"""Structured progress events emitted by the fetch and planning layers."""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    name: str
    level: int = logging.INFO
    data: Dict[str, Any] = field(default_factory=dict)


EventSink = Callable[[Event], None]


def logging_sink(event: Event) -> None:
    """Default sink: forward the event to the standard logger."""
    details = ", ".join(f"{key}={value}" for key, value in event.data.items())
    logger.log(event.level, f"{event.name}: {details}")


def emit(sink: EventSink, name: str, level: int = logging.INFO, **data: Any) -> None:
    sink(Event(name=name, level=level, data=data))
