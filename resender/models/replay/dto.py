from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict

from pydantic import BaseModel, Field


class Action(str, Enum):
    QUERY = "Query"
    TEST = "Test"
    SEND = "Send"


class ReplayMode(str, Enum):
    RUNNING = "Running"
    PAUSED = "Paused"
    SINGLE_STEP = "SingleStep"
    STOPPED = "Stopped"


class ControlSignal(str, Enum):
    PAUSE = "P"
    RESUME = "R"
    STEP = "S"
    STOP = "X"


@dataclass
class ReplayState:
    mode: ReplayMode = ReplayMode.RUNNING
    current_index: int = 0
    total: int = 0
    batch_size: int = 1
    batch_delay: float = 0.0


class RunOptions(BaseModel):
    start: datetime
    end: datetime
    filters: Dict[str, str] = Field(default_factory=dict)
    action: Action = Action.QUERY
    target: str | None = None
    batch_size: int = 10
    batch_delay: float = 5.0
    target_label: str | None = None
    filter_party: str | None = None
    filter_subscription_id: str | None = None
    clean_envelope: bool = False
    assign_new_ids: bool = False
    single_step: bool = False
    exact_match: bool | None = None


class GroupSummary(BaseModel):
    scenario_name: str
    process_name: str
    count: int = 0
    first: datetime | None = None
    last: datetime | None = None
