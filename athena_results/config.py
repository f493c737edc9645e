from dataclasses import dataclass
from typing import Dict, Optional

# Ceiling for both CSV batch sizes and GetQueryResults page sizes.
MAX_BATCH_SIZE = 999


@dataclass
class Config:
    aws_region: str = "us-east-1"
    athena_catalog: str = "AwsDataCatalog"
    athena_database: str = "default"
    athena_workgroup: str = "primary"
    athena_output_s3: Optional[str] = None  # e.g., "s3://my-athena-results/queries"
    athena_poll_interval: float = 1.0
    athena_query_timeout: Optional[float] = None  # seconds; None polls until a terminal state

    result_reuse_enabled: bool = True
    result_reuse_max_age_minutes: int = 60

    batch_size: int = MAX_BATCH_SIZE

    local_output_dir: str = "./outputs"
    output_file_name: Optional[str] = None  # None names each run athena_results_<timestamp>_<query id>.json

    def result_reuse_configuration(self) -> Dict:
        return {
            "ResultReuseByAgeConfiguration": {
                "Enabled": self.result_reuse_enabled,
                "MaxAgeInMinutes": self.result_reuse_max_age_minutes,
            }
        }
