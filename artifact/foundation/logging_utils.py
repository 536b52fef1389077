"""Logging helpers for the operational log and per-target build logs."""

from __future__ import annotations

import logging
import os
import re

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def setup_operational_logger(run_id: str, *, log_dir: str | None = None) -> tuple[logging.Logger, str | None]:
    """
    Configure the logger used for one build run.

    Messages go to stderr at INFO; when `log_dir` is given a DEBUG-level UTF-8
    file `<run_id>_oplog.log` is written there as well.
    """

    logger = logging.getLogger(f"artifact.{run_id}")
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.INFO)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    log_file: str | None = None
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, f"{run_id}_oplog.log")
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False

    logger.info("Operational logging initialized for run %s", run_id)
    if log_file:
        logger.debug("Operational log file: %s", log_file)

    return logger, log_file


def build_log_filename(target: str) -> str:
    """`cmd/foo` -> `cmd_foo.log`; anything outside [A-Za-z0-9._-] becomes `_`."""

    slug = re.sub(r"[^A-Za-z0-9._-]+", "_", target.strip("./\\"))
    return f"{slug or 'root'}.log"


def write_build_log(log_dir: str, target: str, text: str) -> str:
    """Write one target's captured build output to a UTF-8 file, returning its path."""

    os.makedirs(log_dir, exist_ok=True)
    path = os.path.join(log_dir, build_log_filename(target))
    with open(path, "w", encoding="utf-8") as file:
        file.write(text)
    return path
