"""4D construction scheduling: schedules, task-entity links and timeline playback."""

from schedule4d.links import LinkStore
from schedule4d.parser import MSProjectParser, ParseError
from schedule4d.rules import matches
from schedule4d.session import Scheduling4D
from schedule4d.timeline import TimelineEngine

__all__ = ["LinkStore", "MSProjectParser", "ParseError", "Scheduling4D", "TimelineEngine", "matches"]
