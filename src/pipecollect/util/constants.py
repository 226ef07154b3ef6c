"""Config keys for pipecollect defaults.

These constants name keys used with get_config() to resolve defaults for
parallel execution and logging. Set via ~/.pipecollect.toml or PIPECOLLECT_*
environment variables.
"""
ENV_PREFIX = "PIPECOLLECT_"

# Parallel executor defaults (used by pipecollect.operations.parallel)
PARALLEL_CHUNKS = "parallel_chunks"
PARALLEL_MAX_CONCURRENCY = "parallel_max_concurrency"

# Fallback partition count when neither config nor os.cpu_count() supply one
DEFAULT_PARALLEL_CHUNKS = 4

# Logging (used by pipecollect.util.config.configure_logger)
LOGGER_LEVELS = "logger_levels"
LOGGER_FILES = "logger_files"
