from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class FieldMapping(BaseModel):
    """Names of the source fields a Record reads its well-known values from."""

    message_id_field: str = "MSGID"
    scenario_field: str = "ScenarioName"
    process_field: str = "ProcessName"
    timestamp_field: str = "@timestamp"
    payload_field: str = "Payload"
    provenance_field: str = "ReceiveInfo"
    business_key_field: str = "BK"


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ",".join(_as_text(v) for v in value)
    return str(value)


class Record(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    index: str | None = None
    source: Dict[str, Any] = Field(default_factory=dict)
    business_keys: Dict[str, str] = Field(default_factory=dict)
    mapping: FieldMapping = Field(default_factory=FieldMapping)

    @classmethod
    def from_hit(cls, hit: Dict[str, Any], mapping: FieldMapping | None = None) -> "Record":
        """
        Build a record from one search hit. Business keys are read from a nested object
        (``{"BK": {...}}``) and from flat ``BK.<name>`` keys, in document order.
        """
        mapping = mapping or FieldMapping()
        source: Dict[str, Any] = hit.get("_source") or {}
        prefix = f"{mapping.business_key_field}."

        business_keys: Dict[str, str] = {}
        other: Dict[str, Any] = {}
        for name, value in source.items():
            if name == mapping.business_key_field and isinstance(value, dict):
                for key, key_value in value.items():
                    business_keys[str(key)] = _as_text(key_value)
            elif name.startswith(prefix):
                business_keys[name[len(prefix):]] = _as_text(value)
            else:
                other[name] = value

        return cls(
            id=str(hit.get("_id", "")),
            index=hit.get("_index"),
            source=other,
            business_keys=business_keys,
            mapping=mapping,
        )

    def get_text(self, name: str) -> str:
        return _as_text(self.source.get(name))

    @property
    def message_id(self) -> str:
        return self.get_text(self.mapping.message_id_field)

    @property
    def scenario_name(self) -> str:
        return self.get_text(self.mapping.scenario_field)

    @property
    def process_name(self) -> str:
        return self.get_text(self.mapping.process_field)

    @property
    def payload(self) -> str:
        return self.get_text(self.mapping.payload_field)

    @property
    def embedded_provenance(self) -> str | None:
        value = self.source.get(self.mapping.provenance_field)
        return str(value) if value else None

    @property
    def timestamp(self) -> datetime | None:
        raw = self.get_text(self.mapping.timestamp_field)
        if not raw:
            return None
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None


class ReplayRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    message_id: str
    payload: str
    provenance_header: bytes
    business_key_header: bytes
