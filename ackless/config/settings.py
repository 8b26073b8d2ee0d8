"""Engine configuration loading and validation."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterable, Literal

import yaml
from pydantic import AnyUrl, Field, NonNegativeInt, PositiveInt
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_LOCATIONS: tuple[Path, ...] = (
    Path("/etc/ackless/engine.yaml"),
    Path("/etc/ackless/engine.yml"),
    Path("./config/engine.yaml"),
    Path("./config/engine.yml"),
)


class EngineSettings(BaseSettings):
    """Validated settings for the action-confirmation engine."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="ACKLESS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Transport
    transport: Literal["dummy", "websocket"] = Field(
        default="dummy",
        description="Outbound/inbound transport implementation to use.",
    )
    bridge_ws_url: AnyUrl = Field(
        default="ws://localhost:9100/packets",
        description="Packet bridge WebSocket endpoint carrying binary command frames.",
    )
    transport_recv_queue_max: NonNegativeInt = Field(
        default=0,
        description="Maximum buffered inbound frames (0 = unbounded).",
    )
    reconnect_base_delay_seconds: float = Field(
        default=1.0,
        description="Base delay for transport reconnection backoff.",
    )
    reconnect_max_delay_seconds: float = Field(
        default=30.0,
        description="Maximum delay for transport reconnection backoff.",
    )
    reconnect_max_attempts: PositiveInt = Field(
        default=3,
        description="Connect attempts per reconnect round before the waiting send or receive gives up.",
    )
    reconnect_jitter: float = Field(
        default=0.2,
        description="Jitter factor applied to reconnection backoff (0.0-1.0).",
    )

    # Latency & generic confirmation windows
    fallback_latency_ms: NonNegativeInt = Field(
        default=125,
        description="Latency assumed while the game does not report a ready state.",
    )
    latency_multiplier: NonNegativeInt = Field(
        default=2,
        description="Multiplier applied to measured latency when sizing confirmation windows.",
    )
    poll_interval_ms: PositiveInt = Field(
        default=10,
        description="Observation interval for shop, identify and cursor confirmations.",
    )
    settle_floor_ms: NonNegativeInt = Field(
        default=100,
        description="Minimum settle delay after a corrective step before the next send.",
    )
    confirm_floor_ms: PositiveInt = Field(
        default=2000,
        description="Minimum confirmation window for buy, sell and identify attempts.",
    )
    buy_padding_ms: NonNegativeInt = Field(
        default=500,
        description="Fixed padding added to the latency-scaled buy window.",
    )

    # Interaction menu
    menu_attempts: PositiveInt = Field(
        default=5,
        description="Interact attempts before giving up on opening an NPC menu.",
    )
    menu_window_ms: PositiveInt = Field(
        default=5000,
        description="Observation window per menu attempt.",
    )
    menu_poll_interval_ms: PositiveInt = Field(
        default=100,
        description="Observation interval while waiting for the menu flag.",
    )
    menu_settle_floor_ms: NonNegativeInt = Field(
        default=500,
        description="Minimum settle delay once the menu has opened.",
    )
    desync_interacted_after_ms: NonNegativeInt = Field(
        default=1000,
        description="Elapsed time after which a half-open interaction counts as desync.",
    )
    desync_talking_after_ms: NonNegativeInt = Field(
        default=500,
        description="Elapsed time after which an active dialog without menu counts as desync.",
    )
    approach_distance: float = Field(
        default=4.0,
        description="Distance beyond which the navigator is asked to approach before interacting.",
    )

    # Trade session
    trade_pulses: PositiveInt = Field(
        default=10,
        description="Observation pulses while starting a trade; a request is sent every other pulse.",
    )
    trade_pulse_ms: PositiveInt = Field(
        default=200,
        description="Spacing between trade start pulses.",
    )

    # Shop & items
    buy_attempts: PositiveInt = Field(default=3, description="Buy command attempts.")
    sell_attempts: PositiveInt = Field(default=5, description="Sell command attempts.")
    identify_attempts: PositiveInt = Field(
        default=3,
        description="Attempts per identify phase (cursor, then identified).",
    )
    identify_settle_ms: NonNegativeInt = Field(
        default=50,
        description="Delay after an item reports itself identified.",
    )
    cursor_attempts: PositiveInt = Field(
        default=15,
        description="Attempts for moving an item to or from the cursor.",
    )
    cursor_floor_ms: PositiveInt = Field(
        default=500,
        description="Minimum confirmation window for cursor moves.",
    )
    cursor_padding_ms: NonNegativeInt = Field(
        default=200,
        description="Fixed padding added to the latency-scaled cursor window.",
    )
    belt_budget_ms: PositiveInt = Field(
        default=500,
        description="Confirmation window after placing an item in the belt.",
    )
    belt_poll_interval_ms: PositiveInt = Field(
        default=100,
        description="Observation interval while waiting for a belt placement.",
    )
    refresh_base_ms: NonNegativeInt = Field(
        default=300,
        description="Base wait after requesting an entity update.",
    )

    # Notification subscriptions
    subscription_queue_max: NonNegativeInt = Field(
        default=0,
        description="Maximum queued messages per opcode lane (0 = unbounded).",
    )
    subscription_queue_overflow: Literal["block", "drop_new", "drop_oldest"] = Field(
        default="block",
        description="Policy applied when an opcode lane is full.",
    )
    subscription_callback_timeout_seconds: float = Field(
        default=1.0,
        description="Upper bound for a single async callback invocation (0 disables).",
    )
    subscription_max_failures: NonNegativeInt = Field(
        default=3,
        description="Consecutive callback failures before a cooldown applies (0 disables).",
    )
    subscription_failure_cooldown_seconds: float = Field(
        default=5.0,
        description="Cooldown applied to a failing callback.",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum log level for engine processes.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        if isinstance(value, str):
            return value.upper()
        return value

    @field_validator("reconnect_jitter")
    @classmethod
    def _check_jitter(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("reconnect_jitter must be between 0.0 and 1.0")
        return value

    config_path: Path | None = Field(
        default=None,
        description="Resolved path to the on-disk config that seeded the settings.",
        exclude=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[EngineSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            cls._yaml_settings_source,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    @staticmethod
    def _yaml_settings_source(settings_cls: type[EngineSettings] | None = None) -> Dict[str, Any]:
        for path in EngineSettings._resolve_candidate_paths():
            data = EngineSettings._load_file(path)
            if data is not None:
                data.setdefault("config_path", path)
                return data
        return {}

    @staticmethod
    def _resolve_candidate_paths() -> Iterable[Path]:
        explicit = os.getenv("ACKLESS_CONFIG_FILE")
        if explicit:
            yield Path(explicit).expanduser()
        yield from DEFAULT_CONFIG_LOCATIONS

    @staticmethod
    def _load_file(path: Path) -> Dict[str, Any] | None:
        if not path.is_file():
            return None
        suffix = path.suffix.lower()
        try:
            with path.open("r", encoding="utf-8") as handle:
                if suffix in {".yaml", ".yml"}:
                    raw = yaml.safe_load(handle)
                elif suffix == ".json":
                    raw = json.load(handle)
                else:
                    return None
        except OSError as exc:
            raise RuntimeError(f"Failed to read engine config file {path}") from exc
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ValueError(f"Invalid engine config file {path}") from exc

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ValueError(f"Engine config file {path} must contain a mapping at top level.")
        return raw


@lru_cache()
def get_settings() -> EngineSettings:
    """Return memoized engine settings."""

    return EngineSettings()
