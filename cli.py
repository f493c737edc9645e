# python cli.py --query-file query.sql --database mydb --athena-out s3://my-athena-out/queries --local-out ./outputs

import argparse
import logging
from athena_results.config import Config, MAX_BATCH_SIZE
from athena_results.pipeline import Pipeline

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("athena_cli")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Run an Athena query and write its rows to a local JSON array file")
    p.add_argument("--query-file", required=True, help="SQL file to execute")
    p.add_argument("--database", default="default")
    p.add_argument("--catalog", default="AwsDataCatalog")
    p.add_argument("--workgroup", default="primary")
    p.add_argument("--athena-out", default=None, help="S3 output location for query results, e.g. s3://bucket/prefix")
    p.add_argument("--region", default="us-east-1")
    p.add_argument("--local-out", default="./outputs")
    p.add_argument("--file-name", default=None, help="Output file name; defaults to one new file per run")
    p.add_argument("--batch-size", type=int, default=MAX_BATCH_SIZE)
    p.add_argument("--timeout", type=float, default=None, help="Give up polling after this many seconds")
    p.add_argument("--mapped", action="store_true", help="Page rows from Athena instead of streaming the S3 CSV")
    return p


def main(argv=None):
    args = build_parser().parse_args(argv)

    with open(args.query_file, "r") as fh:
        query = fh.read()

    cfg = Config(
        aws_region=args.region,
        athena_catalog=args.catalog,
        athena_database=args.database,
        athena_workgroup=args.workgroup,
        athena_output_s3=args.athena_out,
        athena_query_timeout=args.timeout,
        batch_size=args.batch_size,
        local_output_dir=args.local_out,
        output_file_name=args.file_name,
    )

    result = Pipeline(cfg).run(query, mapped=args.mapped)
    logger.info("Query %s: wrote %d records to %s", result.query_execution_id, result.records_written, result.output_path)


if __name__ == "__main__":
    main()
