"""Tests for the ra_hash and ra_platforms management commands."""

import hashlib
import json
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError


def md5(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


class TestRaHashCommand:
    """Tests for ra_hash."""

    def test_prints_hash(self, tmp_path, hash_temp_dir):
        rom = tmp_path / "game.gba"
        rom.write_bytes(b"GBA ROM")
        out = StringIO()

        call_command("ra_hash", str(rom), "--platform", "Game Boy Advance", stdout=out)

        assert out.getvalue().strip() == md5(b"GBA ROM")

    def test_json_output(self, tmp_path, hash_temp_dir):
        rom = tmp_path / "game.gba"
        rom.write_bytes(b"GBA ROM")
        out = StringIO()

        call_command("ra_hash", str(rom), "--platform", "GBA", "--json", stdout=out)

        data = json.loads(out.getvalue())
        assert data == {
            "hash": md5(b"GBA ROM"),
            "tempDirectory": None,
            "success": True,
            "errorMessage": None,
        }

    def test_failure_raises_command_error(self, tmp_path, hash_temp_dir):
        with pytest.raises(CommandError, match="FileNotFound"):
            call_command(
                "ra_hash",
                str(tmp_path / "missing.gba"),
                "--platform",
                "GBA",
                stdout=StringIO(),
            )

    def test_json_failure_includes_error_kind(self, tmp_path, hash_temp_dir):
        rom = tmp_path / "game.a52"
        rom.write_bytes(b"ROM")
        out = StringIO()

        with pytest.raises(CommandError):
            call_command(
                "ra_hash", str(rom), "--platform", "Atari 5200", "--json", stdout=out
            )

        data = json.loads(out.getvalue())
        assert data["success"] is False
        assert data["errorKind"] == "UnsupportedPlatform"

    def test_archive_temp_directory_removed(self, zip_factory, hash_temp_dir):
        archive = zip_factory("game.zip", {"game.md": b"GENESIS"})
        out = StringIO()

        call_command(
            "ra_hash", str(archive), "--platform", "Genesis", "--ext", ".md", stdout=out
        )

        assert out.getvalue().strip() == md5(b"GENESIS")
        assert list(hash_temp_dir.iterdir()) == []

    def test_keep_temp(self, zip_factory, hash_temp_dir):
        archive = zip_factory("game.zip", {"game.md": b"GENESIS"})
        err = StringIO()

        call_command(
            "ra_hash",
            str(archive),
            "--platform",
            "Genesis",
            "--keep-temp",
            stdout=StringIO(),
            stderr=err,
        )

        [kept] = list(hash_temp_dir.iterdir())
        assert str(kept) in err.getvalue()
        assert (kept / "game.md").exists()


class TestRaPlatformsCommand:
    """Tests for ra_platforms."""

    def test_lists_platforms(self):
        out = StringIO()

        call_command("ra_platforms", stdout=out)

        output = out.getvalue()
        assert "nintendo 64" in output
        assert "byte_swap" in output
        assert "with a hash method" in output

    def test_resolve(self):
        out = StringIO()

        call_command("ra_platforms", "--resolve", "Super Famicom", stdout=out)

        output = out.getvalue()
        assert "super nintendo entertainment system (id 3)" in output
        assert "Matched by: exact" in output
        assert "Hash method: header_skip" in output

    def test_resolve_unknown(self):
        out = StringIO()

        call_command("ra_platforms", "--resolve", "totally unknown platform xyz", stdout=out)

        assert "No match" in out.getvalue()
        assert "id -1" in out.getvalue()
