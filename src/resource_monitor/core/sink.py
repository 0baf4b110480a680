"""
Output sink factory: one truncate-on-open binary file per metric family.
"""

from __future__ import annotations

import logging
from os import PathLike
from pathlib import Path
from typing import BinaryIO, Union

from ..exceptions import SinkOpenError
from .compression import SinkCompressionManager

LOG = logging.getLogger(__name__)

_COMPRESSION = SinkCompressionManager()


def trace_path(
    output_directory: Union[str, PathLike[str]],
    family: str,
    host_id: str,
    compression: str = "none",
) -> Path:
    """Return ``<output_directory>/<family>-<host_id>`` plus the compression suffix."""
    suffix = _COMPRESSION.get(compression).suffix
    return Path(output_directory) / f"{family}-{host_id}{suffix}"


def open_trace_sink(
    output_directory: Union[str, PathLike[str]],
    family: str,
    host_id: str,
    compression: str = "none",
) -> BinaryIO:
    """Open the trace file for ``family``, truncating any previous content.

    The output directory must already exist; a missing directory or a
    permission problem is fatal for the agent and raised as SinkOpenError.
    """
    path = trace_path(output_directory, family, host_id, compression)
    try:
        sink = _COMPRESSION.get(compression).open_writer(str(path))
    except OSError as exc:
        raise SinkOpenError(f"Failed to open trace file {path}: {exc}") from exc
    LOG.info("Writing %s trace to %s", family, path)
    return sink


def read_trace_bytes(path: Union[str, PathLike[str]], compression: str = "none") -> bytes:
    return _COMPRESSION.get(compression).read_all(str(path))
