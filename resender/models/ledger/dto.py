from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from resender.models.replay.dto import GroupSummary


class Outcome(str, Enum):
    OK = "Ok"
    TEST_OK = "TestOk"
    ERROR = "Error"


class LedgerEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    outcome: Outcome
    record_id: str
    detail: str = ""

    def format(self) -> str:
        return f"{self.timestamp.isoformat(timespec='seconds')} [{self.outcome.value}] {self.record_id} {self.detail}".rstrip()


class RunResult(BaseModel):
    """Outcome of one run. The ledgers are append-only and owned by the run that created them."""

    total: int = 0
    stopped: bool = False
    successes: List[LedgerEntry] = Field(default_factory=list)
    errors: List[LedgerEntry] = Field(default_factory=list)
    groups: List[GroupSummary] = Field(default_factory=list)

    def append(self, entry: LedgerEntry) -> None:
        if entry.outcome == Outcome.ERROR:
            self.errors.append(entry)
        else:
            self.successes.append(entry)

    @property
    def processed(self) -> int:
        return len(self.successes) + len(self.errors)

    @property
    def entries(self) -> List[LedgerEntry]:
        return sorted(self.successes + self.errors, key=lambda e: e.timestamp)
