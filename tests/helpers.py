"""Builders for boto3 response payloads used across unit tests."""


def execution_status(state, reason=None):
    """Build a GetQueryExecution response for the given state."""
    status = {"State": state}
    if reason is not None:
        status["StateChangeReason"] = reason
    return {"QueryExecution": {"QueryExecutionId": "exec-1", "Status": status}}


def result_page(*rows, next_token=None):
    """Build a GetQueryResults page; each row is a list of cell values (None = missing)."""
    page = {
        "ResultSet": {
            "Rows": [
                {"Data": [{} if value is None else {"VarCharValue": value} for value in row]}
                for row in rows
            ]
        }
    }
    if next_token:
        page["NextToken"] = next_token
    return page


def csv_body(header, rows):
    """CSV bytes as Athena writes them: every field quoted."""
    lines = [",".join(f'"{h}"' for h in header)]
    lines.extend(",".join(f'"{v}"' for v in row) for row in rows)
    return ("\n".join(lines) + "\n").encode("utf-8")
