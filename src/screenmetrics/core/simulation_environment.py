"""Core simulation environment wrapper around SimPy."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import simpy

logger = logging.getLogger(__name__)

DEFAULT_EPOCH = datetime(2025, 1, 1, tzinfo=timezone.utc)


class SimulationEnvironment:
    """Wrapper around simpy.Environment that also acts as a clock.

    Simulated seconds are mapped onto wall-clock datetimes starting at a
    fixed epoch, so components that read the time through ``clock`` see
    simulated time advance exactly like real time.
    """

    def __init__(self, config: Dict[str, Any]) -> None:
        """Initialize the simulation environment.

        Args:
            config: Simulation-specific configuration containing:
                - duration_s: How long to run, in simulated seconds
                - epoch (optional): ISO 8601 datetime that simulated t=0 maps to
        """
        self.env: simpy.Environment = simpy.Environment()
        self.config: Dict[str, Any] = config
        self.active_processes: list = []

        epoch = config.get("epoch")
        if epoch is None:
            self.epoch = DEFAULT_EPOCH
        elif isinstance(epoch, datetime):
            self.epoch = epoch
        else:
            self.epoch = datetime.fromisoformat(str(epoch))
        if self.epoch.tzinfo is None:
            self.epoch = self.epoch.replace(tzinfo=timezone.utc)

        logger.info(f"SimulationEnvironment initialized (epoch {self.epoch.isoformat()})")

    def schedule_process(self, process_generator_func: Callable, *args, **kwargs) -> simpy.Process:
        """Schedule a SimPy process (a generator function)."""
        process = self.env.process(process_generator_func(*args, **kwargs))
        self.active_processes.append(process)
        logger.debug(f"Scheduled process: {process_generator_func.__name__}")
        return process

    def run(self, until: Optional[float] = None) -> None:
        """Run the simulation until ``until`` or the configured duration."""
        duration = until if until is not None else self.config.get("duration_s", float("inf"))

        logger.info(f"Starting simulation (max time: {duration}s)")
        try:
            self.env.run(until=duration)
        except Exception as e:
            logger.error(f"Error during simulation at time {self.env.now}: {e}")
            raise
        finally:
            logger.info(f"Simulation ended at time {self.env.now}")

    def now(self) -> float:
        """Current simulation time in seconds."""
        return self.env.now

    def clock(self) -> datetime:
        """Current simulation time as an aware datetime."""
        return self.epoch + timedelta(seconds=self.env.now)

    def get_simpy_env(self) -> simpy.Environment:
        return self.env
