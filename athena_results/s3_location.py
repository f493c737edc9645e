from typing import Tuple
from urllib.parse import urlparse


def parse_s3_url(s3_url: str) -> Tuple[str, str]:
    """Split ``s3://bucket/key`` into ``(bucket, key)``.

    Virtual-hosted style authorities (``bucket.s3.amazonaws.com``) keep only the first label.
    """
    if not s3_url or not s3_url.startswith("s3://"):
        raise ValueError(f"Invalid S3 URL: {s3_url!r} must start with s3://")
    parsed = urlparse(s3_url)
    bucket = parsed.netloc.split(".")[0]
    if not bucket:
        raise ValueError(f"Invalid S3 URL: missing bucket name in {s3_url!r}")
    return bucket, parsed.path[1:]


def result_location(output_s3: str, query_execution_id: str) -> str:
    """Athena writes the CSV for a query to ``<output location>/<execution id>.csv``."""
    return f"{output_s3.rstrip('/')}/{query_execution_id}.csv"
