import base64
import binascii
import logging
from datetime import datetime
from typing import Dict, Iterable
from urllib.parse import quote, unquote

from lxml import etree

from resender.models.record.dto import Record, ReplayRecord
from resender.services.transform.envelope_cleaner import EnvelopeCleaner

logger = logging.getLogger(__name__)

PROVENANCE_ROOT = "ReceiveInfo"
UNKNOWN_PARTY = "Unknown"

# Fields copied from an embedded provenance document, in output order
PROVENANCE_FIELDS = (
    "OriginParty",
    "ReceiveId",
    "MessageType",
    "ScenarioName",
    "ProcessName",
    "ProcessState",
)

# Control fields of the business-key section, these do not identify the business data
EXCLUDED_BUSINESS_KEYS = frozenset(
    key.lower()
    for key in (
        "SUBFL_stage",
        "SUBFL_receivingparty",
        "SUBFL_name",
        "SUBFL_history",
        "SUBFL_subid",
        "SUBFL_subid_list",
        "SUBFL_targetid",
        "SUBFL_workflow",
        "SUBFL_senddate",
    )
)

# Source data may carry colons and pipes pre-escaped
RESERVED_ESCAPES = (("&#58;", ":"), ("&#124;", "|"))


def encode_header(value: str) -> bytes:
    """UTF-8, then base64, then percent-encoding so the value travels as a URL-safe token."""
    encoded = base64.b64encode(value.encode("utf-8")).decode("ascii")
    return quote(encoded, safe="").encode("ascii")


def decode_header(value: bytes | str) -> str:
    if isinstance(value, bytes):
        value = value.decode("ascii")
    return base64.b64decode(unquote(value)).decode("utf-8")


class RecordTransformer:
    def __init__(self, envelope_cleaner: EnvelopeCleaner | None = None) -> None:
        self.__envelope_cleaner = envelope_cleaner or EnvelopeCleaner()
        self.__parser = etree.XMLParser(resolve_entities=False, no_network=True)

    def build_provenance_header(
        self,
        record: Record,
        target_label: str | None,
        override_party: str | None,
        override_subscription_id: str | None,
        fallback_state: str,
    ) -> bytes:
        values = self.__default_provenance(record, fallback_state)
        embedded = self.__read_embedded_provenance(record)
        if embedded is not None:
            values.update({k: v for k, v in embedded.items() if v})

        root = etree.Element(PROVENANCE_ROOT)
        for name in PROVENANCE_FIELDS:
            etree.SubElement(root, name).text = values.get(name, "")
        etree.SubElement(root, "ReceiveTimestamp").text = datetime.now().astimezone().isoformat()
        if target_label:
            etree.SubElement(root, "Instance").text = target_label
        if override_party:
            etree.SubElement(root, "FilterParty").text = override_party
        if override_subscription_id:
            etree.SubElement(root, "FilterSubscriptionId").text = override_subscription_id

        return encode_header(etree.tostring(root, encoding="unicode"))

    def build_business_key_header(self, record: Record) -> bytes:
        pairs = [
            f"{name}:{value}"
            for name, value in self.business_key_items(record.business_keys)
        ]
        serialized = "|".join(pairs)
        for escaped, plain in RESERVED_ESCAPES:
            serialized = serialized.replace(escaped, plain)

        return encode_header(serialized)

    def to_replay_record(
        self,
        record: Record,
        target_label: str | None = None,
        override_party: str | None = None,
        override_subscription_id: str | None = None,
        fallback_state: str = "Resent",
        clean_envelope: bool = False,
    ) -> ReplayRecord:
        payload = record.payload
        if clean_envelope:
            payload = self.__envelope_cleaner.clean(payload)

        return ReplayRecord(
            id=record.id,
            message_id=record.message_id,
            payload=payload,
            provenance_header=self.build_provenance_header(
                record, target_label, override_party, override_subscription_id, fallback_state
            ),
            business_key_header=self.build_business_key_header(record),
        )

    @staticmethod
    def business_key_items(business_keys: Dict[str, str]) -> Iterable[tuple[str, str]]:
        for name, value in business_keys.items():
            if name.lower() in EXCLUDED_BUSINESS_KEYS:
                continue
            yield name, value

    @staticmethod
    def __default_provenance(record: Record, fallback_state: str) -> Dict[str, str]:
        return {
            "OriginParty": UNKNOWN_PARTY,
            "ReceiveId": record.message_id,
            "MessageType": "",
            "ScenarioName": record.scenario_name,
            "ProcessName": record.process_name,
            "ProcessState": fallback_state,
        }

    def __read_embedded_provenance(self, record: Record) -> Dict[str, str] | None:
        """
        The embedded document is stored the same way the header is sent: base64, optionally
        percent-encoded. Plain XML is accepted as well. Anything that does not decode to a
        ReceiveInfo document is ignored.
        """
        raw = record.embedded_provenance
        if not raw:
            return None

        document = raw.strip()
        if not document.startswith("<"):
            try:
                document = decode_header(document)
            except (binascii.Error, UnicodeDecodeError, ValueError):
                logger.debug(f"Embedded provenance of record {record.id} is not decodable")
                return None

        try:
            root = etree.fromstring(document.encode("utf-8"), parser=self.__parser)
        except (etree.XMLSyntaxError, ValueError):
            logger.debug(f"Embedded provenance of record {record.id} is not valid XML")
            return None

        if etree.QName(root).localname != PROVENANCE_ROOT:
            return None

        values: Dict[str, str] = {}
        for child in root:
            if not isinstance(child.tag, str):
                continue
            name = etree.QName(child).localname
            if name in PROVENANCE_FIELDS:
                values[name] = (child.text or "").strip()
        return values
