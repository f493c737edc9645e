import time
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional
from botocore.exceptions import BotoCoreError, ClientError
import boto3

from .config import Config
from .errors import AthenaQueryError, QueryTimeoutError
from .events import EventHook, emit

logger = logging.getLogger(__name__)

class QueryState(str, Enum):
    """Athena query execution states; compares equal to the raw API strings."""

    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


PENDING_STATES = (QueryState.QUEUED, QueryState.RUNNING)


@dataclass(frozen=True)
class QueryExecution:
    """One status read of a query execution."""

    query_execution_id: str
    state: Optional[str]
    reason: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.state in PENDING_STATES


class AthenaRunner:
    def __init__(
        self,
        cfg: Config,
        client=None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        on_event: Optional[EventHook] = None,
    ):
        self.cfg = cfg
        self.client = client or boto3.client("athena", region_name=cfg.aws_region)
        self._sleep = sleep
        self._clock = clock
        self._on_event = on_event

    def _start_params(self, query: str) -> Dict:
        params = {
            "QueryString": query,
            "QueryExecutionContext": {
                "Database": self.cfg.athena_database,
                "Catalog": self.cfg.athena_catalog,
            },
            "WorkGroup": self.cfg.athena_workgroup or "primary",
            "ResultReuseConfiguration": self.cfg.result_reuse_configuration(),
        }
        if self.cfg.athena_output_s3:
            params["ResultConfiguration"] = {"OutputLocation": self.cfg.athena_output_s3}
        return params

    def submit(self, query: str) -> str:
        """Start the query and return its execution id without waiting for it."""
        logger.debug("Submitting query: %s", query)
        try:
            resp = self.client.start_query_execution(**self._start_params(query))
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to start query: %s", e)
            raise AthenaQueryError(f"Query execution failed: {e}") from e

        qid = resp.get("QueryExecutionId")
        if not qid:
            raise AthenaQueryError(
                "Failed to start query: QueryExecutionId is undefined", reason="no execution id"
            )
        emit(self._on_event, "query.submitted", query_execution_id=qid, workgroup=self.cfg.athena_workgroup)
        return qid

    def get_execution(self, query_execution_id: str) -> QueryExecution:
        try:
            info = self.client.get_query_execution(QueryExecutionId=query_execution_id)
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to read state of query %s: %s", query_execution_id, e)
            raise AthenaQueryError(f"Query execution failed: {e}", query_execution_id) from e

        status = info.get("QueryExecution", {}).get("Status", {})
        return QueryExecution(
            query_execution_id=query_execution_id,
            state=status.get("State"),
            reason=status.get("StateChangeReason"),
        )

    def wait(self, query_execution_id: str, timeout: Optional[float] = None) -> str:
        """Poll until the query reaches a terminal state.

        Polls immediately, then every ``cfg.athena_poll_interval`` seconds while the query is
        QUEUED or RUNNING. Returns the execution id on SUCCEEDED and raises ``AthenaQueryError``
        on FAILED, CANCELLED or any state Athena did not document. With ``timeout`` set, raises
        ``QueryTimeoutError`` once that many seconds pass without a terminal state; the query
        itself keeps running (see ``stop_query``).
        """
        if timeout is None:
            timeout = self.cfg.athena_query_timeout
        deadline = None if timeout is None else self._clock() + timeout

        while True:
            execution = self.get_execution(query_execution_id)
            state = execution.state
            emit(self._on_event, "poll.state", query_execution_id=query_execution_id, state=state)

            if state == QueryState.SUCCEEDED:
                emit(self._on_event, "query.succeeded", query_execution_id=query_execution_id)
                return query_execution_id
            if state == QueryState.FAILED:
                reason = execution.reason or "Unknown reason"
                emit(self._on_event, "query.failed", query_execution_id=query_execution_id, reason=reason)
                raise AthenaQueryError(f"Query failed: {reason}", query_execution_id, reason)
            if state == QueryState.CANCELLED:
                emit(self._on_event, "query.failed", query_execution_id=query_execution_id, reason="cancelled")
                raise AthenaQueryError("Query was cancelled", query_execution_id, "cancelled")
            if not execution.is_pending:
                reason = f"unknown state: {state}"
                emit(self._on_event, "query.failed", query_execution_id=query_execution_id, reason=reason)
                raise AthenaQueryError(f"Unknown query state: {state}", query_execution_id, reason)

            if deadline is not None and self._clock() >= deadline:
                raise QueryTimeoutError(
                    f"Query {query_execution_id} still {state} after {timeout} seconds",
                    query_execution_id,
                    "timeout",
                )
            self._sleep(self.cfg.athena_poll_interval)

    def run_query(self, query: str, timeout: Optional[float] = None) -> str:
        """Submit the query and block until it succeeds; returns the execution id."""
        qid = self.submit(query)
        logger.info("Started query %s", qid)
        return self.wait(qid, timeout=timeout)

    def stop_query(self, query_execution_id: str) -> None:
        try:
            self.client.stop_query_execution(QueryExecutionId=query_execution_id)
        except (ClientError, BotoCoreError) as e:
            raise AthenaQueryError(f"Failed to stop query: {e}", query_execution_id) from e
        logger.info("Requested stop of query %s", query_execution_id)
