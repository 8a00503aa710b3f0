"""Pytest configuration and shared fixtures for hashing tests."""

import os
import zipfile
from pathlib import Path

import django
import pytest


def pytest_configure(config):
    """Configure Django settings before running tests."""
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "romprint.settings")
    django.setup()


# -----------------------------------------------------------------------------
# Test doubles
# -----------------------------------------------------------------------------


class FakeRunner:
    """ProcessRunner that records commands and returns a canned invocation.

    ``on_run`` is called with the command before returning, so tests can
    simulate side effects such as a tool writing its output file.
    """

    def __init__(self, returncode=0, stdout="", stderr="", timed_out=False):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.timed_out = timed_out
        self.error = None
        self.on_run = None
        self.calls = []

    async def run(self, cmd, timeout=None, cwd=None):
        from hashing.process import ProcessInvocation

        self.calls.append({"cmd": list(cmd), "timeout": timeout, "cwd": cwd})
        if self.error is not None:
            raise self.error
        if self.on_run is not None:
            self.on_run(cmd)
        return ProcessInvocation(
            cmd=list(cmd),
            returncode=-1 if self.timed_out else self.returncode,
            stdout=self.stdout,
            stderr=self.stderr,
            timed_out=self.timed_out,
        )


class FakeHasher:
    """Stands in for the RAHasher adapter.

    Records ``(catalog_id, file_path, file_existed)`` for every call.
    """

    def __init__(self, result=None):
        self.result = result
        self.error = None
        self.calls = []

    async def invoke(self, catalog_id, file_path):
        from hashing.results import HashResult

        self.calls.append((catalog_id, file_path, os.path.exists(file_path)))
        if self.error is not None:
            raise self.error
        return self.result or HashResult.ok("0123456789abcdef0123456789abcdef")


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def fake_hasher():
    return FakeHasher()


@pytest.fixture
def fake_tool(tmp_path):
    """An executable-looking file in its own tools directory."""
    tool_dir = tmp_path / "tools" / "RAHasher"
    tool_dir.mkdir(parents=True)
    tool = tool_dir / "RAHasher"
    tool.write_bytes(b"")
    tool.chmod(0o755)
    return tool


@pytest.fixture
def hash_temp_dir(tmp_path, settings):
    """Point HASH_TEMP_DIR at a per-test directory."""
    temp_dir = tmp_path / "hash-temp"
    temp_dir.mkdir()
    settings.HASH_TEMP_DIR = str(temp_dir)
    return temp_dir


# -----------------------------------------------------------------------------
# File helpers
# -----------------------------------------------------------------------------


def make_zip(path: Path, members: dict) -> Path:
    """Write a ZIP archive with ``{arcname: bytes}`` members."""
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return path


@pytest.fixture
def zip_factory(tmp_path):
    """Create ZIP archives under tmp_path."""

    def _make(name: str, members: dict) -> Path:
        return make_zip(tmp_path / name, members)

    return _make
