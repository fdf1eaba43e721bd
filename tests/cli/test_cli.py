"""Tests for the replcm CLI."""

import os
import time
from pathlib import Path

from typer.testing import CliRunner

from replcm.cli import app
from tests.conftest import md5_hex, write_file

# Note: In Click 8.0+, mix_stderr is no longer a CliRunner parameter.
# Stderr output is combined with stdout by default when using CliRunner.invoke()
runner = CliRunner()

TWO_DAYS_AGO = time.time() - 2 * 86400


def _invoke(settings_file: Path, *args: str, **kwargs):
    return runner.invoke(app, ["--no-dotenv", "--settings", str(settings_file), *args], **kwargs)


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_version_flag(self) -> None:
        """--version shows version info."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "replcm" in result.stdout.lower()

    def test_help_flag(self) -> None:
        """--help shows available commands."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("recycle", "recycle-table", "recycle-partition", "cm-path", "locate", "clear", "serve"):
            assert command in result.stdout


class TestSettingsLoading:
    def test_missing_settings_file(self, tmp_path: Path) -> None:
        result = _invoke(tmp_path / "missing.yaml", "show-config")

        assert result.exit_code == 1
        assert "Settings file not found" in result.output

    def test_invalid_settings_reported(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.yaml"
        bad.write_text("change_manager:\n  retain_seconds: -1\n")

        result = _invoke(bad, "show-config")

        assert result.exit_code == 1
        assert "change_manager.retain_seconds" in result.output

    def test_show_config_prints_effective_settings(self, settings_file: Path, tmp_path: Path) -> None:
        result = _invoke(settings_file, "show-config")

        assert result.exit_code == 0
        assert str(tmp_path / "cmroot") in result.stdout
        assert "checksum_algorithm: md5" in result.stdout

    def test_env_file_overrides_settings(self, settings_file: Path, tmp_path: Path, monkeypatch) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("REPLCM_CHANGE_MANAGER__RETAIN_SECONDS=42\n")
        monkeypatch.delenv("REPLCM_CHANGE_MANAGER__RETAIN_SECONDS", raising=False)

        try:
            result = runner.invoke(app, ["--env-file", str(env_file), "--settings", str(settings_file), "show-config"])
        finally:
            # load_dotenv writes straight into os.environ
            os.environ.pop("REPLCM_CHANGE_MANAGER__RETAIN_SECONDS", None)

        assert result.exit_code == 0
        assert "retain_seconds: 42" in result.stdout

    def test_missing_env_file(self, settings_file: Path, tmp_path: Path) -> None:
        result = runner.invoke(app, ["--env-file", str(tmp_path / "nope.env"), "--settings", str(settings_file), "show-config"])

        assert result.exit_code == 1
        assert ".env file not found" in result.output


class TestRecycleCommands:
    def test_recycle_file(self, settings_file: Path, tmp_path: Path) -> None:
        source = write_file(tmp_path / "warehouse" / "t" / "part", b"cli data")

        result = _invoke(settings_file, "recycle", str(source))

        assert result.exit_code == 0
        assert "Recycled: 1" in result.stdout
        assert not source.exists()
        assert (tmp_path / "cmroot" / f"part_{md5_hex(b'cli data')}").exists()

    def test_recycle_missing_path_succeeds(self, settings_file: Path, tmp_path: Path) -> None:
        result = _invoke(settings_file, "recycle", str(tmp_path / "warehouse" / "gone"))

        assert result.exit_code == 0
        assert "missing: 1" in result.stdout

    def test_recycle_duplicate_reported(self, settings_file: Path, tmp_path: Path) -> None:
        a = write_file(tmp_path / "warehouse" / "a" / "part", b"same")
        b = write_file(tmp_path / "warehouse" / "b" / "part", b"same")

        result = _invoke(settings_file, "recycle", str(a), str(b))

        assert result.exit_code == 0
        assert f"already recycled {b}" in result.stdout
        assert "deduplicated: 1" in result.stdout

    def test_recycle_disabled(self, disabled_settings_file: Path, tmp_path: Path) -> None:
        source = write_file(tmp_path / "warehouse" / "part", b"keep")

        result = _invoke(disabled_settings_file, "recycle", str(source))

        assert result.exit_code == 0
        assert "disabled" in result.stdout
        assert source.exists()

    def test_recycle_table(self, settings_file: Path, tmp_path: Path) -> None:
        for name in ("part1", "part2", "part3"):
            write_file(tmp_path / "warehouse" / "sales.db" / "orders" / name, name.encode())

        result = _invoke(settings_file, "recycle-table", "--db", "sales", "--table", "orders")

        assert result.exit_code == 0
        assert "Recycled: 3" in result.stdout

    def test_recycle_partition(self, settings_file: Path, tmp_path: Path) -> None:
        source = write_file(tmp_path / "warehouse" / "orders" / "dt=20160101" / "hr=00" / "part", b"p")

        result = _invoke(
            settings_file,
            "recycle-partition",
            "--db",
            "default",
            "--table",
            "orders",
            "-k",
            "dt",
            "-k",
            "hr",
            "--value",
            "20160101",
            "--value",
            "00",
        )

        assert result.exit_code == 0
        assert not source.exists()

    def test_recycle_partition_key_value_mismatch(self, settings_file: Path) -> None:
        result = _invoke(settings_file, "recycle-partition", "--db", "d", "--table", "t", "-k", "dt", "-k", "hr", "--value", "1")

        assert result.exit_code == 1
        assert "--key" in result.output


class TestLookupCommands:
    def test_cm_path(self, settings_file: Path, tmp_path: Path) -> None:
        source = write_file(tmp_path / "warehouse" / "part", b"look")
        checksum = md5_hex(b"look")

        result = _invoke(settings_file, "cm-path", str(source))

        assert result.exit_code == 0
        assert str(tmp_path / "cmroot" / f"part_{checksum}") in result.stdout
        assert f"{source}#{checksum}" in result.stdout
        assert source.exists()

    def test_cm_path_rejects_directory(self, settings_file: Path, tmp_path: Path) -> None:
        result = _invoke(settings_file, "cm-path", str(tmp_path))

        assert result.exit_code == 1
        assert "Not a file" in result.output

    def test_locate_after_recycle(self, settings_file: Path, tmp_path: Path) -> None:
        source = write_file(tmp_path / "warehouse" / "part", b"find me")
        checksum = md5_hex(b"find me")
        _invoke(settings_file, "recycle", str(source))

        result = _invoke(settings_file, "locate", f"{source}#{checksum}")

        assert result.exit_code == 0
        assert str(tmp_path / "cmroot" / f"part_{checksum}") in result.stdout

    def test_locate_unknown(self, settings_file: Path, tmp_path: Path) -> None:
        result = _invoke(settings_file, "locate", f"{tmp_path / 'nothing'}#{'0' * 32}")

        assert result.exit_code == 1
        assert "Not found" in result.output


class TestClearCommand:
    def test_nothing_to_clear(self, settings_file: Path) -> None:
        result = _invoke(settings_file, "clear", "--yes")

        assert result.exit_code == 0
        assert "No entries older than" in result.stdout

    def test_empty_directories_pruned_without_expired_entries(self, settings_file: Path, tmp_path: Path) -> None:
        empty = tmp_path / "cmroot" / "leftover" / "deeper"
        empty.mkdir(parents=True)
        fresh = write_file(tmp_path / "cmroot" / "part_bb", b"y")

        result = _invoke(settings_file, "clear")

        assert result.exit_code == 0
        assert "No entries older than" in result.stdout
        assert "Removed directories: 2" in result.stdout
        assert not (tmp_path / "cmroot" / "leftover").exists()
        assert fresh.exists()

    def test_dry_run_leaves_empty_directories(self, settings_file: Path, tmp_path: Path) -> None:
        empty = tmp_path / "cmroot" / "leftover"
        empty.mkdir(parents=True)

        result = _invoke(settings_file, "clear", "--dry-run")

        assert result.exit_code == 0
        assert empty.is_dir()

    def test_dry_run_deletes_nothing(self, settings_file: Path, tmp_path: Path) -> None:
        entry = write_file(tmp_path / "cmroot" / "part_aa", b"x", mtime=TWO_DAYS_AGO)

        result = _invoke(settings_file, "clear", "--dry-run")

        assert result.exit_code == 0
        assert "Would delete 1 entry" in result.stdout
        assert entry.exists()

    def test_clear_with_yes(self, settings_file: Path, tmp_path: Path) -> None:
        old = write_file(tmp_path / "cmroot" / "part_aa", b"x", mtime=TWO_DAYS_AGO)
        fresh = write_file(tmp_path / "cmroot" / "part_bb", b"y")

        result = _invoke(settings_file, "clear", "--yes")

        assert result.exit_code == 0
        assert "Deleted files: 1" in result.stdout
        assert not old.exists()
        assert fresh.exists()

    def test_retain_seconds_override(self, settings_file: Path, tmp_path: Path) -> None:
        entry = write_file(tmp_path / "cmroot" / "part_aa", b"x", mtime=time.time() - 600)

        result = _invoke(settings_file, "clear", "--retain-seconds", "60", "--yes")

        assert result.exit_code == 0
        assert not entry.exists()

    def test_invalid_retain_seconds(self, settings_file: Path) -> None:
        result = _invoke(settings_file, "clear", "--retain-seconds", "0", "--yes")

        assert result.exit_code == 1
        assert "must be positive" in result.output

    def test_confirmation_declined(self, settings_file: Path, tmp_path: Path) -> None:
        entry = write_file(tmp_path / "cmroot" / "part_aa", b"x", mtime=TWO_DAYS_AGO)

        result = _invoke(settings_file, "clear", input="n\n")

        assert result.exit_code == 1
        assert "Aborted" in result.output
        assert entry.exists()


class TestServeCommand:
    def test_serve_disabled_exits_cleanly(self, disabled_settings_file: Path) -> None:
        result = _invoke(disabled_settings_file, "serve")

        assert result.exit_code == 0
        assert "clearer not started" in result.stdout
