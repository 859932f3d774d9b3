"""Monitoring configuration for the drill."""
from prometheus_client import Counter, start_http_server

# Progress metrics
answers_submitted = Counter(
    "vocabdrill_answers_submitted_total",
    "Total number of answers recorded",
    ["outcome"],
)

progress_resets = Counter(
    "vocabdrill_progress_resets_total",
    "Total number of level progress resets",
)

progress_rows_deleted = Counter(
    "vocabdrill_progress_rows_deleted_total",
    "Total number of progress rows removed by resets",
)

# Import metrics
questions_imported = Counter(
    "vocabdrill_questions_imported_total",
    "Total number of questions inserted by the importer",
)

import_row_errors = Counter(
    "vocabdrill_import_row_errors_total",
    "Total number of rows the importer failed to insert",
)

answers_fixed = Counter(
    "vocabdrill_answers_fixed_total",
    "Total number of canonical answers rewritten by the corrective pass",
)

# Error metrics
store_errors = Counter(
    "vocabdrill_store_errors_total",
    "Total number of store errors",
    ["code"],
)

auth_failures = Counter(
    "vocabdrill_auth_failures_total",
    "Total number of rejected credentials",
    ["reason"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
