"""Shared fixtures for unit tests."""

from unittest.mock import MagicMock

import pytest

from athena_results.config import Config
from tests.helpers import execution_status


@pytest.fixture
def cfg():
    return Config(
        athena_database="analytics",
        athena_output_s3="s3://my-bucket/results",
    )


@pytest.fixture
def athena_client():
    client = MagicMock()
    client.start_query_execution.return_value = {"QueryExecutionId": "exec-1"}
    client.get_query_execution.return_value = execution_status("SUCCEEDED")
    return client


@pytest.fixture
def sleeps():
    """Collects requested sleep durations; pass ``sleeps.append`` as the sleep function."""
    return []
