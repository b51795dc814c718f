# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Diagnostic logging configuration for the ``ctbridge`` logger tree."""

from __future__ import annotations

import logging
import sys
from typing import Final

PACKAGE_LOGGER: Final[str] = "ctbridge"
_CONFIGURED_FLAG: Final[str] = "_ctbridge_verbose_configured"


def configure_logging(verbose: bool) -> logging.Logger:
    """Stream ``ctbridge`` debug records to stderr when ``verbose`` is set.

    The handler is installed once per process; repeated calls only adjust the
    level.

    Args:
        verbose: ``True`` to emit debug records, ``False`` for warnings only.

    Returns:
        logging.Logger: The package logger.
    """

    logger = logging.getLogger(PACKAGE_LOGGER)
    if not getattr(logger, _CONFIGURED_FLAG, False):
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)
        logger.propagate = False
        setattr(logger, _CONFIGURED_FLAG, True)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    return logger


__all__ = ["PACKAGE_LOGGER", "configure_logging"]
