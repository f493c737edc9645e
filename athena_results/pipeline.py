import os
import time
import logging
from dataclasses import dataclass
from typing import Callable, Optional
import boto3

from .athena_runner import AthenaRunner
from .config import Config
from .data_writer import JsonFileAppender
from .events import EventHook
from .results import MappedQueryResultProcessor, S3QueryResultProcessor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    query_execution_id: str
    records_written: int
    output_path: str


class Pipeline:
    """Runs a query and persists its rows to a local JSON array file."""

    def __init__(
        self,
        cfg: Config,
        athena_client=None,
        s3_client=None,
        sleep: Callable[[float], None] = time.sleep,
        on_event: Optional[EventHook] = None,
    ):
        self.cfg = cfg
        self.athena_client = athena_client or boto3.client("athena", region_name=cfg.aws_region)
        self.s3_client = s3_client
        self.on_event = on_event
        self.athena = AthenaRunner(cfg, client=self.athena_client, sleep=sleep, on_event=on_event)

    def run(self, query: str, mapped: bool = False) -> PipelineResult:
        if not mapped and not self.cfg.athena_output_s3:
            raise ValueError("athena_output_s3 must be set to read results from S3")
        # an explicit name is checked before the query runs; generated names after
        if self.cfg.output_file_name and os.path.exists(os.path.join(self.cfg.local_output_dir, self.cfg.output_file_name)):
            raise FileExistsError(f"Output file already exists: {self.cfg.output_file_name}")

        logger.info("Running Athena query")
        qid = self.athena.run_query(query)

        writer = JsonFileAppender(self.cfg.local_output_dir, self._output_file_name(qid), on_event=self.on_event)
        if os.path.exists(writer.path):
            raise FileExistsError(f"Output file already exists: {writer.path}")
        if mapped:
            written = self._write_mapped(qid, writer)
        else:
            processor = S3QueryResultProcessor(
                output_s3=self.cfg.athena_output_s3,
                on_data=writer.flush,
                batch_size=self.cfg.batch_size,
                on_complete=writer.close,
                s3_client=self.s3_client,
                region=self.cfg.aws_region,
                on_event=self.on_event,
            )
            written = processor.process_results(qid)

        logger.info("Completed. total records written to %s: %d", writer.path, written)
        return PipelineResult(query_execution_id=qid, records_written=written, output_path=writer.path)

    def _write_mapped(self, qid: str, writer: JsonFileAppender) -> int:
        processor = MappedQueryResultProcessor(
            self.athena_client, max_results=self.cfg.batch_size, on_event=self.on_event
        )
        records = processor.process_results(qid)
        size = self.cfg.batch_size
        for start in range(0, len(records), size):
            writer.flush(records[start:start + size])
        writer.close()
        return len(records)

    def _output_file_name(self, qid: str) -> str:
        if self.cfg.output_file_name:
            return self.cfg.output_file_name
        timestamp = int(time.time())
        return f"athena_results_{timestamp}_{qid}.json"
