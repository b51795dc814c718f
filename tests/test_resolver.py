# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for locating the ctrace executable."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from ctbridge.config import BridgeConfig
from ctbridge.errors import BinaryNotFoundError
from ctbridge.resolver import BinaryResolver, DeploymentLayout, describe_directory, detect_layout


def test_development_layout_resolves_bin_ctrace(dev_root: Path) -> None:
    resolved = BinaryResolver(BridgeConfig(dev_root=dev_root)).resolve()

    assert resolved.path == dev_root / "bin" / "ctrace"
    assert resolved.path.is_absolute()
    assert resolved.layout is DeploymentLayout.DEVELOPMENT


def test_packaged_layout_uses_resources_dir(tmp_path: Path) -> None:
    (tmp_path / "bin").mkdir()
    (tmp_path / "bin" / "ctrace").write_text("", encoding="utf-8")

    resolved = BinaryResolver(BridgeConfig(resources_dir=tmp_path, dev_root=tmp_path / "unused")).resolve()

    assert resolved.layout is DeploymentLayout.PACKAGED
    assert resolved.path == tmp_path / "bin" / "ctrace"


def test_frozen_interpreter_selects_packaged_layout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(sys, "frozen", True, raising=False)

    assert detect_layout(BridgeConfig()) is DeploymentLayout.PACKAGED


def test_missing_binary_reports_path_and_listing(tmp_path: Path) -> None:
    (tmp_path / "bin").mkdir()
    (tmp_path / "bin" / "ctrace.exe").write_text("", encoding="utf-8")
    (tmp_path / "bin" / "README").write_text("", encoding="utf-8")

    with pytest.raises(BinaryNotFoundError) as excinfo:
        BinaryResolver(BridgeConfig(dev_root=tmp_path)).resolve()

    error = excinfo.value
    assert error.searched_path == tmp_path / "bin" / "ctrace"
    assert error.listing == ["README", "ctrace.exe"]
    assert str(tmp_path / "bin" / "ctrace") in str(error)


def test_no_fallback_to_other_names(tmp_path: Path) -> None:
    (tmp_path / "bin").mkdir()
    (tmp_path / "bin" / "ctrace-linux").write_text("", encoding="utf-8")

    with pytest.raises(BinaryNotFoundError):
        BinaryResolver(BridgeConfig(dev_root=tmp_path)).resolve()


def test_listing_failure_is_described_not_raised(tmp_path: Path) -> None:
    listing = describe_directory(tmp_path / "missing")

    assert isinstance(listing, str)
    assert listing.startswith("<unavailable")

    with pytest.raises(BinaryNotFoundError, match="unavailable"):
        BinaryResolver(BridgeConfig(dev_root=tmp_path / "missing")).resolve()
