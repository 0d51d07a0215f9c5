"""Simulated app sessions driving the measure-buffer-flush pipeline."""

import json
import logging
from datetime import timedelta
from pathlib import Path
from pprint import pformat
from typing import Any, Dict, Optional

import yaml

from ..core import APP_WILL_ENTER_FOREGROUND, LocalEventBus, SimPyScheduler, SimulationEnvironment
from ..engine import ScreenLoader
from ..export import RecordingHttpClient, RemoteMetricExporter
from ..metrics import Metric, MetricType, Unit
from ..storage import InMemoryPersistenceStorage
from ..utils.config_validator import ConfigurationError, validate_config
from ..workload import DistributionSampler

logger = logging.getLogger(__name__)


class SessionSimulator:
    """Replays a host app session on simulated time.

    ``num_screens`` spans are opened at t=0 and each one closes after a
    sampled load time. Foreground signals are posted at the configured
    ``resume_at_s`` times, and the recurring export runs on the SimPy
    scheduler, so a session of any length completes instantly.
    """

    def __init__(self, config_data: Dict[str, Any]):
        """Initialize the simulator.

        Args:
            config_data: Complete configuration dictionary including a
                ``simulation`` section
        """
        self.config = config_data
        is_valid, errors = validate_config(self.config, simulation=True)
        if not is_valid:
            raise ConfigurationError("; ".join(errors))

        self.sim_config: Dict[str, Any] = self.config["simulation"]

        # Initialized in setup_simulation
        self.sim_env_wrapper: Optional[SimulationEnvironment] = None
        self.storage: Optional[InMemoryPersistenceStorage] = None
        self.http_client: Optional[RecordingHttpClient] = None
        self.event_bus: Optional[LocalEventBus] = None
        self.screen_loader: Optional[ScreenLoader] = None
        self.sampler = DistributionSampler(self.sim_config.get("random_seed"))

        logger.info("SessionSimulator initialized")

    def setup_simulation(self) -> None:
        """Build the pipeline on top of a fresh simulation environment."""
        self.sim_env_wrapper = SimulationEnvironment(self.sim_config)
        simpy_env = self.sim_env_wrapper.get_simpy_env()

        self.storage = InMemoryPersistenceStorage()
        last_synced_ago = self.sim_config.get("last_synced_s_ago")
        if last_synced_ago is not None:
            self.storage.set_last_synced_timestamp(
                self.sim_env_wrapper.epoch - timedelta(seconds=last_synced_ago)
            )
        self._seed_previous_session()

        self.http_client = RecordingHttpClient()
        export_config = self.config["export"]
        exporter = RemoteMetricExporter(
            self.http_client,
            self.storage,
            url=export_config["url"],
            batch_size=export_config["batch_size"],
        )
        self.event_bus = LocalEventBus()
        self.screen_loader = ScreenLoader(
            storage=self.storage,
            exporter=exporter,
            scheduler=SimPyScheduler(simpy_env),
            event_source=self.event_bus,
            threshold=self.config["sync_threshold_s"],
            clock=self.sim_env_wrapper.clock,
        )

        prefix = self.sim_config.get("screen_name_prefix", "Test Screen")
        for index in range(self.sim_config["num_screens"]):
            self.sim_env_wrapper.schedule_process(self._screen_process, f"{prefix}-{index}")
        if self.sim_config["resume_at_s"]:
            self.sim_env_wrapper.schedule_process(self._resume_process)

        logger.info(f"Simulation set up with {self.sim_config['num_screens']} screens")

    def _seed_previous_session(self) -> None:
        """Buffer metrics left over from an earlier run of the app."""
        count = self.sim_config.get("buffered_at_launch", 0)
        if not count:
            return
        prefix = self.sim_config.get("screen_name_prefix", "Test Screen")
        recorded_at = self.sim_env_wrapper.epoch - timedelta(
            seconds=self.sim_config.get("last_synced_s_ago") or 0
        )
        self.storage.replace([
            Metric(
                name=f"{prefix}-previous-{index}",
                type=MetricType.SCREEN_LOADING,
                value=self.sampler.sample(self.sim_config["load_time_dist_config"]),
                unit=Unit.SECONDS,
                timestamp=recorded_at,
            )
            for index in range(count)
        ])
        logger.info(f"Seeded {count} metrics from a previous session")

    def _screen_process(self, name: str):
        env = self.sim_env_wrapper.get_simpy_env()
        self.screen_loader.start(name)
        yield env.timeout(self.sampler.sample(self.sim_config["load_time_dist_config"]))
        self.screen_loader.stop(name)

    def _resume_process(self):
        env = self.sim_env_wrapper.get_simpy_env()
        for resume_at in sorted(self.sim_config["resume_at_s"]):
            if resume_at > env.now:
                yield env.timeout(resume_at - env.now)
            logger.debug(f"Posting {APP_WILL_ENTER_FOREGROUND} at t={env.now}")
            self.event_bus.post(APP_WILL_ENTER_FOREGROUND)

    def run(self) -> Dict[str, Any]:
        """Run the session and return a summary of what happened."""
        if self.sim_env_wrapper is None:
            self.setup_simulation()

        try:
            self.sim_env_wrapper.run(self.sim_config["duration_s"])
        finally:
            self.screen_loader.close()

        summary = self.summarize()
        logger.info(f"Session summary:\n{pformat(summary)}")
        return summary

    def summarize(self) -> Dict[str, Any]:
        records_sent = self.http_client.records_sent
        buffered = len(self.storage.load())
        return {
            "end_time_s": self.sim_env_wrapper.now(),
            "metrics_recorded": records_sent + buffered - self.sim_config["buffered_at_launch"],
            "exports": len(self.http_client.requests),
            "records_sent": records_sent,
            "records_buffered": buffered,
            "open_spans": len(self.screen_loader.in_progress),
        }

    @classmethod
    def from_yaml_file(cls, file_path: str) -> "SessionSimulator":
        with open(file_path, "r") as f:
            config_data = yaml.safe_load(f)
        return cls(config_data)

    @classmethod
    def from_json_file(cls, file_path: str) -> "SessionSimulator":
        with open(file_path, "r") as f:
            config_data = json.load(f)
        return cls(config_data)

    def save_summary(self, summary: Dict[str, Any], output_path: str) -> Path:
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(summary, f, indent=2)
        logger.info(f"Summary written to {path}")
        return path
