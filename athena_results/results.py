"""
Two ways to read the results of a finished query.

S3QueryResultProcessor streams the CSV file Athena writes to its output location and hands
records to a sink in bounded batches, so memory stays at one batch no matter how large the
result is. MappedQueryResultProcessor pages rows straight from GetQueryResults and maps
them onto the header row; it is simpler but keeps the whole result in memory.
"""

import csv
import io
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterator, List, Optional
import boto3
import pandas as pd

from .config import MAX_BATCH_SIZE
from .errors import BatchSizeError, ResultProcessingError
from .events import EventHook, emit
from .s3_location import parse_s3_url, result_location

logger = logging.getLogger(__name__)

# columns=True yields {header: value} dicts; the rest are csv.reader keyword arguments.
DEFAULT_CSV_PARSE_OPTIONS: Dict[str, Any] = {"columns": True}


def validate_batch_size(batch_size: Optional[int]) -> int:
    if batch_size is None:
        return MAX_BATCH_SIZE
    if batch_size > MAX_BATCH_SIZE:
        raise BatchSizeError(f"Batch size cannot be greater than {MAX_BATCH_SIZE}")
    if batch_size < 1:
        raise BatchSizeError(f"Batch size must be at least 1, got {batch_size}")
    return batch_size


class QueryResultProcessor(ABC):
    @abstractmethod
    def process_results(self, query_execution_id: str) -> Any:
        ...


class S3QueryResultProcessor(QueryResultProcessor):
    def __init__(
        self,
        output_s3: str,
        on_data: Callable[[List[Any]], None],
        batch_size: Optional[int] = MAX_BATCH_SIZE,
        csv_parse_options: Optional[Dict[str, Any]] = None,
        on_complete: Optional[Callable[[], None]] = None,
        s3_client=None,
        region: str = "us-east-1",
        on_event: Optional[EventHook] = None,
    ):
        self.batch_size = validate_batch_size(batch_size)
        self.output_s3 = output_s3
        self.on_data = on_data
        self.on_complete = on_complete
        self.csv_parse_options = {**DEFAULT_CSV_PARSE_OPTIONS, **(csv_parse_options or {})}
        self.s3 = s3_client or boto3.client("s3", region_name=region)
        self._on_event = on_event

    def process_results(self, query_execution_id: str) -> int:
        """Stream the result CSV of a query through ``on_data``; returns the number of records.

        Any failure (missing object, empty body, malformed CSV, or the sink raising) aborts
        processing and is raised as ``ResultProcessingError``. ``on_complete`` runs once after
        the last batch, only when everything succeeded.
        """
        s3_url = result_location(self.output_s3, query_execution_id)
        try:
            bucket, key = parse_s3_url(s3_url)
            emit(self._on_event, "results.fetching", query_execution_id=query_execution_id, location=s3_url)
            body = self._fetch_s3_object(bucket, key)
            total = self._process_stream(body, query_execution_id)
            if self.on_complete is not None:
                self.on_complete()
        except Exception as e:
            logger.error("Processing results of %s failed: %s", query_execution_id, e)
            raise ResultProcessingError(
                f"Error processing results: {e}", query_execution_id, reason=str(e)
            ) from e

        emit(self._on_event, "results.completed", query_execution_id=query_execution_id, records=total)
        return total

    def _fetch_s3_object(self, bucket: str, key: str):
        resp = self.s3.get_object(Bucket=bucket, Key=key)
        body = resp.get("Body")
        if body is None:
            raise IOError(f"Failed to fetch file: {bucket}/{key}")
        if resp.get("ContentLength") == 0:
            raise IOError(f"Result file is empty: {bucket}/{key}")
        logger.debug("S3 response metadata: %s", resp.get("ResponseMetadata"))
        return body

    def _records(self, body) -> Iterator[Any]:
        """Decode the CSV body one record at a time.

        Every record must have as many fields as the first line; a short or long row raises
        ``csv.Error`` rather than being padded or truncated.
        """
        options = dict(self.csv_parse_options)
        columns = options.pop("columns", True)
        reader = csv.reader(io.TextIOWrapper(body, encoding="utf-8-sig", newline=""), **{"strict": True, **options})
        header = next(reader, None)
        if header is None:
            raise ValueError("Result file is empty")
        if not columns:
            yield header
        for row in reader:
            if not row:
                continue
            if len(row) != len(header):
                raise csv.Error(
                    f"Invalid record length on line {reader.line_num}: expected {len(header)} fields, got {len(row)}"
                )
            yield dict(zip(header, row)) if columns else row

    def _process_stream(self, body, query_execution_id: str) -> int:
        total = 0
        batch: List[Any] = []
        for record in self._records(body):
            batch.append(record)
            if len(batch) >= self.batch_size:
                total = self._process_batch(batch, total, query_execution_id)
                batch = []
        if batch:
            total = self._process_batch(batch, total, query_execution_id)
        return total

    def _process_batch(self, batch: List[Any], total: int, query_execution_id: str) -> int:
        try:
            self.on_data(batch)
        except Exception as e:
            raise ResultProcessingError(f"Error processing batch: {e}", reason=str(e)) from e
        total += len(batch)
        emit(self._on_event, "batch.flushed", query_execution_id=query_execution_id, size=len(batch), total=total)
        return total


class MappedQueryResultProcessor(QueryResultProcessor):
    def __init__(
        self,
        athena_client,
        max_results: Optional[int] = MAX_BATCH_SIZE,
        paginate: bool = True,
        on_event: Optional[EventHook] = None,
    ):
        self.client = athena_client
        self.max_results = validate_batch_size(max_results)
        self.paginate = paginate
        self._on_event = on_event

    def process_results(self, query_execution_id: str) -> List[Dict[str, str]]:
        """Return every result row as a ``{column: value}`` dict, header row excluded."""
        logger.info("Fetching results for %s", query_execution_id)
        try:
            return self._extract_rows(self._fetch_pages(query_execution_id), query_execution_id)
        except Exception as e:
            logger.error("Processing results of %s failed: %s", query_execution_id, e)
            raise ResultProcessingError(
                f"Error processing results: {e}", query_execution_id, reason=str(e)
            ) from e

    def to_df(self, query_execution_id: str) -> pd.DataFrame:
        records = self.process_results(query_execution_id)
        df = pd.DataFrame.from_records(records)
        logger.info("Fetched %d rows", len(df))
        return df

    def _fetch_pages(self, query_execution_id: str) -> Iterator[List[Dict]]:
        paginator = self.client.get_paginator("get_query_results")
        pages = paginator.paginate(
            QueryExecutionId=query_execution_id,
            PaginationConfig={"PageSize": self.max_results},
        )
        for page_number, page in enumerate(pages, start=1):
            result_set = page.get("ResultSet")
            if result_set is None:
                raise ValueError("Query results are empty or undefined")
            rows = result_set.get("Rows") or []
            emit(
                self._on_event,
                "page.fetched",
                query_execution_id=query_execution_id,
                page=page_number,
                rows=len(rows),
            )
            yield rows
            if not self.paginate:
                break

    def _extract_rows(self, pages: Iterator[List[Dict]], query_execution_id: str) -> List[Dict[str, str]]:
        headers: Optional[List[str]] = None
        records: List[Dict[str, str]] = []
        for rows in pages:
            if headers is None:
                if not rows:
                    logger.warning("No rows found in result set of %s", query_execution_id)
                    return []
                headers = self._extract_headers(rows[0])
                rows = rows[1:]
            records.extend(self._map_row(row, headers) for row in rows)
        if headers is None:
            raise ValueError("Query results are empty or undefined")
        return records

    @staticmethod
    def _extract_headers(row: Dict) -> List[str]:
        headers = [cell.get("VarCharValue") or "" for cell in row.get("Data") or []]
        if not headers:
            raise ValueError("No headers found in the result set")
        return headers

    @staticmethod
    def _map_row(row: Dict, headers: List[str]) -> Dict[str, str]:
        mapped = {}
        for index, cell in enumerate(row.get("Data") or []):
            # cells past the header row, or under an empty header, are dropped
            header = headers[index] if index < len(headers) else None
            if header:
                mapped[header] = cell.get("VarCharValue") or ""
        return mapped
