# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Exception taxonomy shared by every bridge stage."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class BridgeError(Exception):
    """Base class for failures that are reported to the caller as a result."""


class EnvironmentUnavailableError(BridgeError):
    """Raised when the Linux execution layer or a distribution is missing."""

    def __init__(self, message: str, remediation: str) -> None:
        """Initialise the error with user-facing remediation steps.

        Args:
            message: Short description of the missing capability.
            remediation: Step-by-step instructions to fix the environment.
        """

        super().__init__(f"{message}\n\n{remediation}")
        self.message = message
        self.remediation = remediation


class BridgeSetupError(BridgeError):
    """Raised when the socket bridge cannot be established."""


class BinaryNotFoundError(BridgeError):
    """Raised when the analysis tool executable is absent."""

    def __init__(self, searched_path: Path, listing: Sequence[str] | str) -> None:
        """Initialise the error with the searched location and its parent listing.

        Args:
            searched_path: The single path inspected by the resolver.
            listing: Entries of the parent directory, or a note explaining why
                the directory could not be listed.
        """

        if isinstance(listing, str):
            detail = listing
        else:
            detail = ", ".join(listing) if listing else "<empty>"
        super().__init__(
            f"ctrace binary not found at: {searched_path}\nContents of {searched_path.parent}: {detail}",
        )
        self.searched_path = searched_path
        self.listing = listing


class ToolLaunchError(BridgeError):
    """Raised when the tool process cannot be spawned."""


class ToolRuntimeError(BridgeError):
    """Raised when the tool fails or the transport breaks mid-stream."""

    def __init__(
        self,
        message: str,
        *,
        exit_code: int | None = None,
        stderr: str = "",
        output: str = "",
    ) -> None:
        """Initialise the error with the diagnostics gathered so far.

        Args:
            message: Human-readable failure description.
            exit_code: Tool exit status when known.
            stderr: Captured diagnostic stream of the tool.
            output: Partial output relayed before the failure.
        """

        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr
        self.output = output


class SessionBusyError(BridgeError):
    """Raised when a bridged session is requested while another is active."""


__all__ = [
    "BinaryNotFoundError",
    "BridgeError",
    "BridgeSetupError",
    "EnvironmentUnavailableError",
    "SessionBusyError",
    "ToolLaunchError",
    "ToolRuntimeError",
]
