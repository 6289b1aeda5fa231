# Copyright 2026 Cisco Systems, Inc.
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
#
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and shared fixtures.

This file is automatically loaded by pytest before running tests.
All fixtures defined here are available to every test module without
explicit imports.
"""

from __future__ import annotations

import io
import tarfile
from pathlib import Path

import pytest
from dotenv import load_dotenv

from unitypackage_scanner.config.config import Config
from unitypackage_scanner.core.models import ExtractedFile
from unitypackage_scanner.core.resolver import AssetResolver

# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

project_root = Path(__file__).parent.parent
env_file = project_root / ".env"

if env_file.exists():
    load_dotenv(env_file)


@pytest.fixture(autouse=True)
def _clean_scanner_env(monkeypatch):
    """Keep UNITYPACKAGE_SCANNER_* variables from a developer shell out of tests."""
    for name in (
        "UNITYPACKAGE_SCANNER_PATTERN_FILE",
        "UNITYPACKAGE_SCANNER_PATTERN_PRESET",
        "UNITYPACKAGE_SCANNER_EXTENSION_FILE",
        "UNITYPACKAGE_SCANNER_EXTENSION_PRESET",
        "UNITYPACKAGE_SCANNER_TEMP_DIR",
        "UNITYPACKAGE_SCANNER_MAX_FILE_SIZE",
        "UNITYPACKAGE_SCANNER_MAX_WORKERS",
        "UNITYPACKAGE_SCANNER_STRICT_EXTRACTION",
    ):
        monkeypatch.delenv(name, raising=False)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def guid(n: int) -> str:
    """Deterministic 32-hex-digit asset GUID."""
    return f"{n:032x}"


def add_tar_member(tf: tarfile.TarFile, name: str, data: bytes | str = b"", **attrs) -> None:
    """Add a regular file member (or a link/dir when *attrs* set ``type``)."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    info = tarfile.TarInfo(name)
    info.size = len(data) if attrs.get("type", tarfile.REGTYPE) == tarfile.REGTYPE else 0
    for key, value in attrs.items():
        setattr(info, key, value)
    tf.addfile(info, io.BytesIO(data) if info.size else None)


# ---------------------------------------------------------------------------
# Factory fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_tar(tmp_path: Path):
    """Factory fixture for raw gzip tar archives.

    Usage::

        archive = make_tar([
            ("a/file.txt", b"data"),
            ("evil", b"", {"type": tarfile.SYMTYPE, "linkname": "/etc/passwd"}),
        ])
    """
    _counter = [0]

    def _make(members: list[tuple], name: str = "raw") -> Path:
        _counter[0] += 1
        archive_path = tmp_path / f"{name}-{_counter[0]}.unitypackage"
        with tarfile.open(archive_path, "w:gz") as tf:
            for member in members:
                member_name, data = member[0], member[1]
                attrs = member[2] if len(member) > 2 else {}
                add_tar_member(tf, member_name, data, **attrs)
        return archive_path

    return _make


@pytest.fixture
def make_package(tmp_path: Path):
    """Factory fixture for creating synthetic ``.unitypackage`` archives.

    Usage::

        package = make_package({
            "Assets/Scripts/Net.cs": 'UnityWebRequest.Get("https://x");',
            "Plugins/native.dll": b"MZ...",
        })

    Each logical path becomes a GUID directory holding ``asset``,
    ``asset.meta`` and ``pathname``.  Pass ``raw_members`` to add arbitrary
    extra tar entries (name -> bytes).
    """
    _counter = [0]

    def _make(
        assets: dict[str, str | bytes],
        raw_members: dict[str, bytes | str] | None = None,
        name: str = "test",
    ) -> Path:
        _counter[0] += 1
        package_path = tmp_path / f"{name}-{_counter[0]}.unitypackage"
        with tarfile.open(package_path, "w:gz") as tf:
            for index, (logical_path, content) in enumerate(assets.items(), start=1):
                asset_guid = guid(index)
                add_tar_member(tf, f"{asset_guid}/asset", content)
                add_tar_member(tf, f"{asset_guid}/asset.meta", f"fileFormatVersion: 2\nguid: {asset_guid}\n")
                add_tar_member(tf, f"{asset_guid}/pathname", f"{logical_path}\n00\n")
            for member_name, data in (raw_members or {}).items():
                add_tar_member(tf, member_name, data)
        return package_path

    return _make


@pytest.fixture
def make_file():
    """Factory fixture for :class:`ExtractedFile` objects typed from their path."""
    resolver = AssetResolver()

    def _make(path: str, content: str | None = None, size_bytes: int | None = None) -> ExtractedFile:
        return ExtractedFile(
            path=path,
            file_type=resolver.determine_file_type(path),
            size_bytes=size_bytes if size_bytes is not None else len(content or ""),
            content=content,
        )

    return _make


@pytest.fixture
def scanner_config(tmp_path: Path) -> Config:
    """Config whose scratch directories live under *tmp_path*."""
    return Config(temp_dir=tmp_path / "scratch")


@pytest.fixture
def script_file(make_file):
    """A small C# script that touches the network and starts a process."""
    return make_file(
        "Assets/Scripts/Updater.cs",
        "using UnityEngine;\n"
        "public class Updater : MonoBehaviour {\n"
        "    // Process.Start is only mentioned in this comment\n"
        '    void Start() { Process.Start("cmd.exe"); }\n'
        "}\n",
    )

