"""Core scheduling, signalling and simulation primitives."""

from .events import APP_WILL_ENTER_FOREGROUND, EventSource, LocalEventBus
from .scheduler import PeriodicScheduler, ScheduledTask, SimPyScheduler, ThreadingScheduler
from .simulation_environment import SimulationEnvironment

__all__ = [
    "APP_WILL_ENTER_FOREGROUND",
    "EventSource",
    "LocalEventBus",
    "PeriodicScheduler",
    "ScheduledTask",
    "SimPyScheduler",
    "ThreadingScheduler",
    "SimulationEnvironment",
]
