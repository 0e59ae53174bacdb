# Copyright 2025 Ant Group Co., Ltd.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Logging configuration for sealbid.

sealbid is silent by default: the ``sealbid`` logger carries a single
NullHandler and does not propagate. Applications opt in with
:func:`setup_logging`.

What gets logged:
    * INFO: one summary line per evaluated auction (shape, select mode, time).
    * DEBUG: per-round timings of the auction circuit.
    * WARNING: aborted evaluations and engines that failed to load.

Ciphertexts and decrypted values are never logged.

Example usage:
    >>> import sealbid
    >>> sealbid.setup_logging(level="INFO")
    >>> sealbid.setup_logging(level="DEBUG", filename="auction.log", stream=False)
"""

import logging
import sys
from typing import IO, Literal

SEALBID_LOGGER_NAME = "sealbid"

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _reset(logger: logging.Logger) -> None:
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()


def _silence(logger: logging.Logger) -> None:
    _reset(logger)
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


def setup_logging(
    level: LogLevel = "INFO",
    *,
    stream: IO[str] | Literal[False] | None = None,
    filename: str | None = None,
    format: str = DEFAULT_FORMAT,
    propagate: bool = False,
) -> None:
    """
    Route sealbid log records to a stream, a file, or the application.

    Every call replaces the handlers installed by the previous one, so the
    function may be called again to change the level or the destination.

    Args:
        level: Minimum level emitted by sealbid loggers.
        stream: Stream to write to. Defaults to ``sys.stderr`` unless
                ``propagate`` is set; ``False`` disables stream output.
        filename: Also append records to this file.
        format: Format string for the handlers installed here.
        propagate: Hand records to the application's root logger. With no
                   explicit stream or file, nothing else is installed.
    """
    logger = logging.getLogger(SEALBID_LOGGER_NAME)
    _reset(logger)
    logger.setLevel(level)
    logger.propagate = propagate

    if stream is None and not propagate:
        stream = sys.stderr

    handlers: list[logging.Handler] = []
    if stream is not None and stream is not False:
        handlers.append(logging.StreamHandler(stream))
    if filename:
        handlers.append(logging.FileHandler(filename))

    formatter = logging.Formatter(format)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    if not handlers and not propagate:
        logger.addHandler(logging.NullHandler())


def disable_logging() -> None:
    """Return to library mode: close sealbid handlers and stop propagation."""
    _silence(logging.getLogger(SEALBID_LOGGER_NAME))


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a sealbid module.

    Names outside the ``sealbid`` hierarchy are prefixed so that every record
    is governed by :func:`setup_logging`.

    Example:
        >>> logger = get_logger(__name__)  # 'sealbid.circuit.auction'
    """
    if name != SEALBID_LOGGER_NAME and not name.startswith(
        SEALBID_LOGGER_NAME + "."
    ):
        name = f"{SEALBID_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


if not logging.getLogger(SEALBID_LOGGER_NAME).handlers:
    _silence(logging.getLogger(SEALBID_LOGGER_NAME))
