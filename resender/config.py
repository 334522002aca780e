from enum import Enum
import configparser
import re
from os import environ
from os.path import exists
from typing import Any
import logging

from pydantic import BaseModel, Field, ValidationError, computed_field, field_validator

logger = logging.getLogger(__name__)

_PATH = "app{suffix}.conf"
_CONFIG = None


def _convert_conf_to_sec(value: str) -> int:
    conversion_map = {"s": 1, "m": 60, "h": 3600, "d": 86400}
    match = re.match(r"^(\d+)([smhd])$", value)
    if not match:
        raise ValueError(
            f"Incorrect input, must be digits with {conversion_map.keys()}"
        )

    number = int(match.group(1))
    unit = match.group(2)

    return number * conversion_map[unit]


def _to_bool(v: Any, default: bool) -> bool:
    if v in (None, "", " "):
        return default
    if isinstance(v, str):
        return v.lower() in ("yes", "true", "t", "1")
    return bool(v)


class LogLevel(str, Enum):
    debug = "debug"
    info = "info"
    warning = "warning"
    error = "error"
    critical = "critical"


class ConfigApp(BaseModel):
    loglevel: LogLevel = Field(default=LogLevel.info)
    # Every emitted line is mirrored into this file when set
    logfile: str | None = Field(default=None)

    @field_validator("logfile", mode="before")
    def validate_logfile(cls, v: Any) -> str | None:
        if v in (None, "", " "):
            return None
        return str(v)


class ConfigSearch(BaseModel):
    url: str
    authentication: str = Field(
        default="off",
        description="Authentication for the search backend, can be 'off', 'bearer', 'azure_oauth2' or 'aws'",
    )
    token: str | None = Field(default=None)
    keep_alive: str = Field(default="1m")
    page_size: int = Field(default=1000, gt=0, le=10000)
    timeout: int = Field(default=30)
    retries: int = Field(default=3, ge=1)
    backoff: float = Field(default=0.5)
    timestamp_field: str = Field(default="@timestamp")
    exact_match: bool = Field(default=True)

    @field_validator("authentication")
    def validate_authentication(cls, value: Any) -> str:
        if value not in {"off", "bearer", "azure_oauth2", "aws"}:
            raise ValueError(
                "authentication must be either 'off', 'bearer', 'azure_oauth2' or 'aws'"
            )
        return str(value)

    @field_validator("keep_alive")
    def validate_keep_alive(cls, value: str) -> str:
        _convert_conf_to_sec(value)
        return value

    @field_validator("page_size", mode="before")
    def validate_page_size(cls, v: Any) -> int:
        if v in (None, "", " "):
            return 1000
        return int(v)

    @field_validator("timeout", mode="before")
    def validate_timeout(cls, v: Any) -> int:
        if v in (None, "", " "):
            return 30
        return int(v)

    @field_validator("retries", mode="before")
    def validate_retries(cls, v: Any) -> int:
        if v in (None, "", " "):
            return 3
        return int(v)

    @field_validator("backoff", mode="before")
    def validate_backoff(cls, v: Any) -> float:
        if v in (None, "", " "):
            return 0.5
        return float(v)

    @field_validator("token", mode="before")
    def validate_token(cls, v: Any) -> str | None:
        if v in (None, "", " "):
            return None
        return str(v)

    @field_validator("exact_match", mode="before")
    def validate_exact_match(cls, v: Any) -> bool:
        return _to_bool(v, True)


class ConfigReplay(BaseModel):
    targets_file: str = Field(default="targets.json")
    timeout: int = Field(default=30)
    # A replayed request may already have been delivered when it times out, so no retries by default
    retries: int = Field(default=1, ge=1)
    backoff: float = Field(default=0.5)
    batch_size: int = Field(default=10, ge=1)
    batch_delay: str = Field(default="5s")
    poll_interval: float = Field(default=0.2, gt=0)
    source_host: str = Field(default="resender")
    fallback_state: str = Field(default="Resent")
    target_label: str | None = Field(default=None)

    @computed_field
    def batch_delay_in_sec(self) -> int:
        return _convert_conf_to_sec(self.batch_delay)

    @field_validator("timeout", mode="before")
    def validate_timeout(cls, v: Any) -> int:
        if v in (None, "", " "):
            return 30
        return int(v)

    @field_validator("retries", mode="before")
    def validate_retries(cls, v: Any) -> int:
        if v in (None, "", " "):
            return 1
        return int(v)

    @field_validator("batch_size", mode="before")
    def validate_batch_size(cls, v: Any) -> int:
        if v in (None, "", " "):
            return 10
        return int(v)

    @field_validator("poll_interval", mode="before")
    def validate_poll_interval(cls, v: Any) -> float:
        if v in (None, "", " "):
            return 0.2
        return float(v)

    @field_validator("target_label", mode="before")
    def validate_target_label(cls, v: Any) -> str | None:
        if v in (None, "", " "):
            return None
        return str(v)


class ConfigRecord(BaseModel):
    message_id_field: str = Field(default="MSGID")
    scenario_field: str = Field(default="ScenarioName")
    process_field: str = Field(default="ProcessName")
    payload_field: str = Field(default="Payload")
    provenance_field: str = Field(default="ReceiveInfo")
    business_key_field: str = Field(default="BK")


class ConfigAws(BaseModel):
    profile: str
    region: str


class ConfigAzureOauth2(BaseModel):
    token_url: str
    client_id: str
    client_secret: str
    resource: str


class ConfigStats(BaseModel):
    enabled: bool = Field(default=False)
    host: str | None = Field(default=None)
    port: int | None = Field(default=None)
    module_name: str | None = Field(default=None)

    @field_validator("enabled", mode="before")
    def validate_enabled(cls, v: Any) -> bool:
        return _to_bool(v, False)

    @field_validator("host", mode="before")
    def validate_host(cls, v: Any) -> str | None:
        if v in (None, "", " "):
            return None
        return str(v)

    @field_validator("port", mode="before")
    def validate_port(cls, v: Any) -> int | None:
        if v in (None, "", " "):
            return None
        return int(v)


class Config(BaseModel):
    app: ConfigApp
    search: ConfigSearch
    replay: ConfigReplay
    record: ConfigRecord
    stats: ConfigStats
    azure_oauth2: ConfigAzureOauth2 | None = None
    aws: ConfigAws | None = None


def read_ini_file(path: str) -> Any:
    ini_data = configparser.ConfigParser(interpolation=None)
    ini_data.read(path)

    ret = {}
    for section in ini_data.sections():
        ret[section] = dict(ini_data[section])

    return ret


def reset_config() -> None:
    global _CONFIG
    _CONFIG = None


def set_config(config: Config) -> None:
    global _CONFIG
    _CONFIG = config


def get_config(path: str | None = None) -> Config:
    global _CONFIG
    global _PATH

    if _CONFIG is not None:
        return _CONFIG

    if path is None:
        suffix = environ.get("APP_ENV", "")
        if suffix:
            suffix = f".{suffix}"
        path = _PATH.replace("{suffix}", suffix)
        logger.info(f"Reading configuration using file: {path}")

    if not exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    # INI files are not a native pydantic source, so sections are flattened into dicts first.
    ini_data = read_ini_file(path)

    for optional in ("app", "replay", "record", "stats"):
        ini_data.setdefault(optional, {})

    try:
        _CONFIG = Config(**ini_data)
    except ValidationError as e:
        logger.error(f"Configuration validation error: {e}")
        raise e

    return _CONFIG
