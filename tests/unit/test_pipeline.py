"""Unit tests for Pipeline and the command line wrapper."""

import io
import os
import json
from unittest.mock import MagicMock, patch

import pytest

import cli
from athena_results.config import Config
from athena_results.errors import AthenaQueryError
from athena_results.pipeline import Pipeline, PipelineResult
from tests.helpers import csv_body, execution_status, result_page


@pytest.fixture
def pipeline_cfg(tmp_path):
    return Config(
        athena_database="analytics",
        athena_output_s3="s3://my-bucket/results",
        batch_size=2,
        local_output_dir=str(tmp_path / "out"),
        output_file_name="rows.json",
    )


class TestPipeline:
    """Tests for Pipeline.run."""

    def test_streams_s3_results_to_json(self, pipeline_cfg, athena_client, sleeps):
        data = csv_body(["id", "name"], [["1", "a"], ["2", "b"], ["3", "c"]])
        s3 = MagicMock()
        s3.get_object.return_value = {"Body": io.BytesIO(data), "ContentLength": len(data)}
        athena_client.get_query_execution.side_effect = [
            execution_status("RUNNING"),
            execution_status("SUCCEEDED"),
        ]
        pipeline = Pipeline(pipeline_cfg, athena_client=athena_client, s3_client=s3, sleep=sleeps.append)

        result = pipeline.run("SELECT id, name FROM t")

        assert result == PipelineResult("exec-1", 3, str(pipeline_cfg.local_output_dir) + "/rows.json")
        s3.get_object.assert_called_once_with(Bucket="my-bucket", Key="results/exec-1.csv")
        with open(result.output_path, encoding="utf-8") as fh:
            assert json.load(fh) == [
                {"id": "1", "name": "a"},
                {"id": "2", "name": "b"},
                {"id": "3", "name": "c"},
            ]

    def test_mapped_results_to_json(self, pipeline_cfg, athena_client, sleeps):
        athena_client.get_paginator.return_value.paginate.return_value = [
            result_page(["id"], ["1"], ["2"], ["3"]),
        ]
        pipeline = Pipeline(pipeline_cfg, athena_client=athena_client, s3_client=MagicMock(), sleep=sleeps.append)

        result = pipeline.run("SELECT id FROM t", mapped=True)

        assert result.records_written == 3
        with open(result.output_path, encoding="utf-8") as fh:
            assert json.load(fh) == [{"id": "1"}, {"id": "2"}, {"id": "3"}]

    def test_empty_result_writes_empty_array(self, pipeline_cfg, athena_client, sleeps):
        data = csv_body(["id"], [])
        s3 = MagicMock()
        s3.get_object.return_value = {"Body": io.BytesIO(data), "ContentLength": len(data)}
        pipeline = Pipeline(pipeline_cfg, athena_client=athena_client, s3_client=s3, sleep=sleeps.append)

        result = pipeline.run("SELECT id FROM t WHERE false")

        with open(result.output_path, encoding="utf-8") as fh:
            assert json.load(fh) == []

    def test_failed_query_writes_nothing(self, pipeline_cfg, athena_client, sleeps):
        athena_client.get_query_execution.return_value = execution_status("FAILED", "Table not found")
        s3 = MagicMock()
        pipeline = Pipeline(pipeline_cfg, athena_client=athena_client, s3_client=s3, sleep=sleeps.append)

        with pytest.raises(AthenaQueryError, match="Table not found"):
            pipeline.run("SELECT * FROM missing")

        s3.get_object.assert_not_called()

    def test_repeated_runs_write_separate_files(self, tmp_path, athena_client, sleeps):
        """Each run gets its own output file, so every file stays a valid array."""
        cfg = Config(athena_output_s3="s3://my-bucket/results", local_output_dir=str(tmp_path))
        data = csv_body(["id"], [["1"]])
        s3 = MagicMock()
        s3.get_object.side_effect = lambda **kwargs: {"Body": io.BytesIO(data), "ContentLength": len(data)}
        athena_client.start_query_execution.side_effect = [
            {"QueryExecutionId": "exec-1"},
            {"QueryExecutionId": "exec-2"},
        ]
        pipeline = Pipeline(cfg, athena_client=athena_client, s3_client=s3, sleep=sleeps.append)

        first = pipeline.run("SELECT 1")
        second = pipeline.run("SELECT 1")

        assert first.output_path != second.output_path
        assert second.output_path.endswith("_exec-2.json")
        for result in (first, second):
            with open(result.output_path, encoding="utf-8") as fh:
                assert json.load(fh) == [{"id": "1"}]

    def test_existing_named_output_is_not_reused(self, pipeline_cfg, athena_client, sleeps):
        out_dir = pipeline_cfg.local_output_dir
        os.makedirs(out_dir)
        with open(os.path.join(out_dir, "rows.json"), "w", encoding="utf-8") as fh:
            fh.write('[\n{"id": "1"}\n]')
        pipeline = Pipeline(pipeline_cfg, athena_client=athena_client, s3_client=MagicMock(), sleep=sleeps.append)

        with pytest.raises(FileExistsError):
            pipeline.run("SELECT 1")

        athena_client.start_query_execution.assert_not_called()

    def test_requires_output_location_for_s3(self, athena_client):
        pipeline = Pipeline(Config(), athena_client=athena_client, s3_client=MagicMock())

        with pytest.raises(ValueError, match="athena_output_s3"):
            pipeline.run("SELECT 1")

        athena_client.start_query_execution.assert_not_called()


class TestCli:
    """Tests for the cli module."""

    def test_builds_config_from_arguments(self, tmp_path):
        query_file = tmp_path / "query.sql"
        query_file.write_text("SELECT 1")

        with patch.object(cli, "Pipeline") as pipeline_cls:
            pipeline_cls.return_value.run.return_value = PipelineResult("exec-1", 0, "out.json")
            cli.main([
                "--query-file", str(query_file),
                "--database", "analytics",
                "--athena-out", "s3://bucket/out",
                "--batch-size", "100",
                "--timeout", "30",
                "--mapped",
            ])

        cfg = pipeline_cls.call_args.args[0]
        assert cfg.athena_database == "analytics"
        assert cfg.athena_output_s3 == "s3://bucket/out"
        assert cfg.batch_size == 100
        assert cfg.athena_query_timeout == 30.0
        pipeline_cls.return_value.run.assert_called_once_with("SELECT 1", mapped=True)
