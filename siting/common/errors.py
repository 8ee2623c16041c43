"""Failure types shared by loaders, preprocessors, and the CLI."""


class PipelineError(Exception):
    """Base class; ``error_code`` is what lands in the JSON log line."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Bad settings, arguments, or dataset configuration. Always a hard failure."""

    error_code = "CONFIG_ERROR"


class StageError(PipelineError):
    """A dataset-level step failed; other datasets keep running unless --strict."""

    error_code = "STAGE_ERROR"


class SourceUnreadable(StageError):
    """A dataset file or shard could not be fetched, read, or decoded."""

    error_code = "SOURCE_UNREADABLE"
