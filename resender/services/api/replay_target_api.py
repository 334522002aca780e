import logging
from typing import Dict

from requests.exceptions import RequestException

from resender.models.record.dto import ReplayRecord
from resender.services.api.api_service import HttpService
from resender.services.api.authenticators.authenticator import Authenticator

logger = logging.getLogger(__name__)

XML_CONTENT_TYPE = "application/xml; charset=utf-8"

HEADER_PROVENANCE = "X-Replay-Provenance"
HEADER_BUSINESS_KEYS = "X-Replay-BusinessKeys"
HEADER_SOURCE_HOST = "X-Source-Host"
HEADER_MESSAGE_ID = "X-Message-Id"
# Reserved for downstream grouping, always sent empty
HEADER_GROUP_ID = "X-Group-Id"
HEADER_GROUP_SEQUENCE = "X-Group-Sequence"

ERROR_BODY_LIMIT = 500


class ReplayTargetApi(HttpService):
    def __init__(
        self,
        base_url: str,
        timeout: int,
        retries: int,
        backoff: float,
        source_host: str,
        assign_new_ids: bool = False,
        authenticator: Authenticator | None = None,
    ) -> None:
        super().__init__(
            base_url=base_url,
            timeout=timeout,
            retries=retries,
            backoff=backoff,
            authenticator=authenticator,
            content_type=XML_CONTENT_TYPE,
        )
        self.__source_host = source_host
        self.__assign_new_ids = assign_new_ids

    def make_replay_headers(self, record: ReplayRecord) -> Dict[str, str | bytes]:
        # http.client encodes str header values as latin-1, free text goes out as UTF-8 bytes
        return {
            HEADER_PROVENANCE: record.provenance_header,
            HEADER_BUSINESS_KEYS: record.business_key_header,
            HEADER_SOURCE_HOST: self.__source_host.encode("utf-8"),
            HEADER_MESSAGE_ID: b"" if self.__assign_new_ids else record.message_id.encode("utf-8"),
            HEADER_GROUP_ID: "",
            HEADER_GROUP_SEQUENCE: "",
        }

    def post_record(self, record: ReplayRecord) -> tuple[bool, str]:
        """
        Replay one record. Never raises for transport or response failures, the outcome is
        returned as (ok, detail) so the caller decides how to ledger it.
        """
        try:
            response = self.do_request(
                "POST",
                data=record.payload.encode("utf-8"),
                headers=self.make_replay_headers(record),
            )
        except (ConnectionError, RequestException) as e:
            logger.warning(f"Replay of record {record.id} to {self.base_url} failed: {e}")
            return False, str(e)
        except (ValueError, UnicodeError) as e:
            logger.warning(f"Replay request for record {record.id} could not be sent: {e}")
            return False, f"Invalid replay request: {e}"

        if response.status_code >= 300:
            body = (response.text or "").strip()
            if len(body) > ERROR_BODY_LIMIT:
                body = body[:ERROR_BODY_LIMIT] + "..."
            logger.warning(f"Replay of record {record.id} returned HTTP {response.status_code}")
            return False, f"HTTP {response.status_code} {response.reason or ''}: {body}".strip()

        return True, f"HTTP {response.status_code}"
