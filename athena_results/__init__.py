"""
athena_results - run Athena queries and read their results

- athena_runner submits a query and polls it to a terminal state
- results reads a finished query, either streaming the CSV from S3 in batches
  or paging rows from GetQueryResults
- data_writer appends batches to a JSON array file
- pipeline wires the three together
"""

from athena_results.config import Config, MAX_BATCH_SIZE
from athena_results.errors import AthenaQueryError, BatchSizeError, QueryTimeoutError, ResultProcessingError
from athena_results.athena_runner import AthenaRunner, QueryExecution, QueryState
from athena_results.results import MappedQueryResultProcessor, QueryResultProcessor, S3QueryResultProcessor
from athena_results.data_writer import JsonFileAppender
from athena_results.pipeline import Pipeline, PipelineResult

__version__ = "0.1.0"
__all__ = [
    "Config",
    "MAX_BATCH_SIZE",
    "AthenaQueryError",
    "BatchSizeError",
    "QueryTimeoutError",
    "ResultProcessingError",
    "AthenaRunner",
    "QueryExecution",
    "QueryState",
    "QueryResultProcessor",
    "S3QueryResultProcessor",
    "MappedQueryResultProcessor",
    "JsonFileAppender",
    "Pipeline",
    "PipelineResult",
]
