"""Application constants."""

USER_AGENT = "storage-siting/0.3 (+site-research)"
SUPPORTED_DATASETS = ("competitor", "commercial", "traffic", "population")
COMMANDS = (
    "preprocess",
    "split",
    "load",
    "select",
    "hydrate-images",
)
DEFAULT_SHARD_COUNT = 18
DEFAULT_ROWS_PER_CHUNK = 100000
DEFAULT_MAX_WORKERS = 4
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "dataset",
    "source",
    "shard",
    "event",
    "status",
    "attempt",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
