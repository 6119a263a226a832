"""
Purpose
-------
Structured diagnostics for sampling runs. Every entry carries the run's
sample size, algorithm and seed so a line in a log file can be traced back to
the exact invocation that produced it, and sampler progress is reported as
snapshots of the sampler's counters and state.

Key behaviors
-------------
- `SamplerLogger.emit` writes one entry per call, filtered by level.
- `SamplerLogger.child(...)` shares the run id, run metadata and settings
  with a differently named component (CLI -> sampler).
- `resolve_settings(...)` reads LOG_LEVEL / LOG_FORMAT / LOG_DEST and returns
  the effective `LogSettings` plus one `EnvFallback` per rejected value;
  `report_fallbacks(...)` turns those into WARNING entries.
- `generate_run_id(...)` derives a run id from the run metadata.

Conventions
-----------
- Output goes to STDERR or an append-mode UTF-8 file, never STDOUT, which
  carries the sample.
- JSON (default) keeps sampled characters unescaped; text output is one line
  per entry.
- Timestamps are UTC ISO-8601 with a trailing "Z".

Downstream usage
----------------
    logger = initialize_logger("stream_sampler.cli", run_meta={"sample_size": 10,
                               "algorithm": "fast", "seed": 0})
    sampler = FastReservoirSampler(cap=10, rng=rng, logger=logger.child("stream_sampler.sampling"))
"""

import datetime as dt
import json
import os
import sys
from dataclasses import dataclass
from typing import Mapping, TypedDict

LOG_LEVELS: dict[str, int] = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}
LOG_FORMATS: tuple[str, ...] = ("json", "text")
STDERR_DEST: str = "stderr"


class RunMeta(TypedDict, total=False):
    """
    Purpose
    -------
    Invocation parameters copied into every entry of a run.

    Fields
    ------
    sample_size : int
        Requested reservoir capacity.
    algorithm : str
        "exact" or "fast".
    seed : int or None
        Seed handed to `JavaRandom`; None when drawn from OS entropy.
    """

    sample_size: int
    algorithm: str
    seed: int | None


class LogEntry(TypedDict):
    timestamp: str
    level: str
    run_id: str
    component: str
    event: str
    message: str
    run_meta: RunMeta
    context: dict


@dataclass(frozen=True)
class LogSettings:
    """Effective threshold, format and destination of a logger."""

    level: str = "INFO"
    log_format: str = "json"
    dest: str = STDERR_DEST


@dataclass(frozen=True)
class EnvFallback:
    """
    Purpose
    -------
    Record of one LOG_* variable whose value was rejected.

    Attributes
    ----------
    env_var : str
        Name of the environment variable.
    invalid_value : str
        Value found in the environment.
    default : str
        Value used instead.
    """

    env_var: str
    invalid_value: str
    default: str

    @property
    def event(self) -> str:
        return f"FALLBACK_{self.env_var}"


class SamplerLogger:
    """
    Purpose
    -------
    Level-filtered structured logger bound to one sampling run.

    Parameters
    ----------
    component_name : str
        Emitting component, e.g. "stream_sampler.cli".
    run_id : str
        Identifier shared by every entry of the run.
    run_meta : RunMeta
        Sample size, algorithm and seed of the run.
    settings : LogSettings, optional
        Threshold, format and destination; defaults to INFO / json / stderr.

    Notes
    -----
    - Entries below the threshold return before the clock is read.
    """

    def __init__(
        self,
        component_name: str,
        run_id: str,
        run_meta: RunMeta,
        settings: LogSettings | None = None,
    ) -> None:
        self.component_name = component_name
        self.run_id = run_id
        self.run_meta = run_meta
        self.settings = settings or LogSettings()

    def child(self, component_name: str) -> "SamplerLogger":
        """Return a logger for `component_name` sharing this run's id, metadata and settings."""

        return SamplerLogger(component_name, self.run_id, self.run_meta, self.settings)

    def is_enabled_for(self, level: str) -> bool:
        return LOG_LEVELS[level] >= LOG_LEVELS[self.settings.level]

    def emit(
        self, event: str, level: str = "INFO", msg: str | None = None, context: dict | None = None
    ) -> None:
        """
        Emit one entry if `level` passes the threshold.

        Parameters
        ----------
        event : str
            Snake_case event name, e.g. "skip_mode_entered".
        level : str, default="INFO"
            One of `LOG_LEVELS`.
        msg : str, optional
            Human-readable message; "" when omitted.
        context : dict, optional
            Event payload, typically a sampler snapshot; {} when omitted.

        Returns
        -------
        None
        """

        if not self.is_enabled_for(level):
            return
        entry: LogEntry = {
            "timestamp": dt.datetime.now(dt.timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": level,
            "run_id": self.run_id,
            "component": self.component_name,
            "event": event,
            "message": msg or "",
            "run_meta": self.run_meta,
            "context": context or {},
        }
        self.write_entry(self.format_entry(entry))

    def debug(self, event: str, msg: str | None = None, context: dict | None = None) -> None:
        self.emit(event=event, level="DEBUG", msg=msg, context=context)

    def info(self, event: str, msg: str | None = None, context: dict | None = None) -> None:
        self.emit(event=event, level="INFO", msg=msg, context=context)

    def warning(self, event: str, msg: str | None = None, context: dict | None = None) -> None:
        self.emit(event=event, level="WARNING", msg=msg, context=context)

    def error(self, event: str, msg: str | None = None, context: dict | None = None) -> None:
        self.emit(event=event, level="ERROR", msg=msg, context=context)

    def format_entry(self, entry: LogEntry) -> str:
        """
        Render an entry as JSON or as one line of text.

        Parameters
        ----------
        entry : LogEntry
            Entry built by `emit`.

        Returns
        -------
        str
            JSON document, or
            `<timestamp> <LEVEL> [<run_id>] <component>.<event>: <message> | k=v ...`.

        Notes
        -----
        - Values json cannot encode (paths, numpy scalars) are rendered with
          `str` on a second attempt.
        """

        if self.settings.log_format == "json":
            try:
                return json.dumps(entry, ensure_ascii=False)
            except (TypeError, ValueError):
                return json.dumps(entry, ensure_ascii=False, default=str)
        line = (
            f"{entry['timestamp']} {entry['level']} [{entry['run_id']}] "
            f"{entry['component']}.{entry['event']}: {entry['message']}"
        )
        if entry["context"]:
            line += " | " + " ".join(f"{k}={v}" for k, v in entry["context"].items())
        return line

    def write_entry(self, formatted_entry: str) -> None:
        if self.settings.dest == STDERR_DEST:
            print(formatted_entry, file=sys.stderr, flush=True)
        else:
            with open(self.settings.dest, "a", encoding="utf-8") as f:
                f.write(formatted_entry + "\n")


def initialize_logger(
    component_name: str,
    level: str | None = None,
    run_id: str | None = None,
    run_meta: RunMeta | None = None,
) -> SamplerLogger:
    """
    Build the logger for a sampling run from the environment.

    Parameters
    ----------
    component_name : str
        Emitting component.
    level : str, optional
        Threshold overriding LOG_LEVEL when it names a valid level.
    run_id : str, optional
        Run identifier; derived from `run_meta` when omitted.
    run_meta : RunMeta, optional
        Sample size, algorithm and seed; defaults to {}.

    Returns
    -------
    SamplerLogger
        Configured logger. Rejected LOG_* values have already been reported
        through it as WARNING entries.
    """

    if run_meta is None:
        run_meta = {}
    settings, fallbacks = resolve_settings()
    if level is not None and level.upper() in LOG_LEVELS:
        settings = LogSettings(level.upper(), settings.log_format, settings.dest)
    if run_id is None:
        run_id = generate_run_id(run_meta)

    logger = SamplerLogger(component_name, run_id, run_meta, settings)
    report_fallbacks(logger, fallbacks)
    return logger


def resolve_settings(
    environ: Mapping[str, str] | None = None,
) -> tuple[LogSettings, list[EnvFallback]]:
    """
    Read and validate LOG_LEVEL, LOG_FORMAT and LOG_DEST.

    Parameters
    ----------
    environ : Mapping[str, str], optional
        Environment to read; defaults to `os.environ`.

    Returns
    -------
    tuple[LogSettings, list[EnvFallback]]
        Effective settings and the rejected values, in level -> format ->
        destination order.

    Notes
    -----
    - Level is matched case-insensitively and upper-cased, format lower-cased.
    - Any destination other than "stderr" (any case) must open for append;
      otherwise STDERR is used.
    """

    if environ is None:
        environ = os.environ
    defaults = LogSettings()
    fallbacks: list[EnvFallback] = []

    level: str = environ.get("LOG_LEVEL", defaults.level).upper()
    if level not in LOG_LEVELS:
        fallbacks.append(EnvFallback("LOG_LEVEL", environ["LOG_LEVEL"], defaults.level))
        level = defaults.level

    log_format: str = environ.get("LOG_FORMAT", defaults.log_format).lower()
    if log_format not in LOG_FORMATS:
        fallbacks.append(EnvFallback("LOG_FORMAT", environ["LOG_FORMAT"], defaults.log_format))
        log_format = defaults.log_format

    dest: str = environ.get("LOG_DEST", defaults.dest)
    if dest.lower() == STDERR_DEST:
        dest = STDERR_DEST
    elif not is_writable(dest):
        fallbacks.append(EnvFallback("LOG_DEST", dest, defaults.dest))
        dest = defaults.dest

    return LogSettings(level, log_format, dest), fallbacks


def is_writable(path: str) -> bool:
    try:
        with open(path, "a", encoding="utf-8"):
            pass
    except OSError:
        return False
    return True


def generate_run_id(run_meta: RunMeta) -> str:
    """
    Derive `<algorithm>-k<sample_size>-<UTC timestamp>-<pid>` from run metadata.

    Parameters
    ----------
    run_meta : RunMeta
        Missing fields are rendered as "sampler" and "k?".

    Returns
    -------
    str
        Identifier unique per process and second.
    """

    algorithm: str = run_meta.get("algorithm") or "sampler"
    sample_size = run_meta.get("sample_size", "?")
    timestamp: str = dt.datetime.now(dt.timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    return f"{algorithm}-k{sample_size}-{timestamp}-{os.getpid()}"


def report_fallbacks(logger: SamplerLogger, fallbacks: list[EnvFallback]) -> None:
    for fallback in fallbacks:
        logger.emit(
            event=fallback.event,
            level="WARNING",
            msg=f"Ignoring {fallback.env_var}={fallback.invalid_value!r}; using {fallback.default}",
            context={"env_var": fallback.env_var, "invalid_value": fallback.invalid_value},
        )
