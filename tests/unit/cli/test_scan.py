"""Unit tests for the scan command."""

import json
import os
import resource
import signal
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from dirscan.cli.commands.scan import DESCRIPTOR_LIMIT, EXIT_CANCELLED, _raise_descriptor_limit
from dirscan.cli.main import app
from dirscan.scanner.cursor import DirectoryCursor
from dirscan.scanner.driver import ScanDriver
from dirscan.scanner.errors import CatalogOpenError
from dirscan.scanner.models import ScanOutcome, ScanResult, SinkDecision
from dirscan.scanner.sink import TreeSink
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    """Small tree with a large file, a directory and a cache."""
    root = tmp_path.resolve() / "t"
    root.mkdir()
    (root / "big").write_bytes(b"x" * 20_000)
    (root / "docs").mkdir()
    (root / "docs" / "a.txt").write_text("hello")
    (root / "cache").mkdir()
    (root / "cache" / "blob").write_bytes(b"x" * 5_000)
    return root


@pytest.fixture
def no_config(tmp_path: Path) -> str:
    """Config path that does not exist, so built-in defaults apply."""
    return str(tmp_path / "none.toml")


def _scan_json(*args: str) -> tuple[int, dict[str, object]]:
    result = runner.invoke(app, ["scan", *args, "--format", "json"])
    return result.exit_code, json.loads(result.stdout)


class TestScanCommand:
    """Tests for dirscan scan."""

    def test_table_output(self, tree: Path, no_config: str) -> None:
        """The table lists the root's children and a summary."""
        result = runner.invoke(app, ["scan", str(tree), "--config", no_config])

        assert result.exit_code == 0
        assert "big" in result.stdout
        assert "docs/" in result.stdout
        assert "Scan complete." in result.stdout

    def test_json_output(self, tree: Path, no_config: str) -> None:
        """JSON output carries totals, entries and the outcome."""
        code, data = _scan_json(str(tree), "--config", no_config)

        assert code == 0
        assert data["root"] == str(tree)
        assert data["outcome"] == "complete"
        assert data["error_count"] == 0
        entries = data["entries"]
        assert isinstance(entries, list)
        names = {e["name"] for e in entries}
        assert names == {"big", "docs", "cache"}
        total = data["total"]
        assert isinstance(total, dict)
        assert total["items"] == 5
        assert total["total_apparent_size"] >= 25_005

    def test_sort_by_name(self, tree: Path, no_config: str) -> None:
        """--sort name orders entries alphabetically."""
        _, data = _scan_json(str(tree), "--sort", "name", "--config", no_config)

        entries = data["entries"]
        assert isinstance(entries, list)
        assert [e["name"] for e in entries] == ["big", "cache", "docs"]

    def test_limit(self, tree: Path, no_config: str) -> None:
        """--limit caps the number of entries."""
        result = runner.invoke(
            app, ["scan", str(tree), "--limit", "1", "--sort", "name", "--config", no_config]
        )

        assert result.exit_code == 0
        assert "showing 1 of 3 entries" in result.stdout

    def test_exclude(self, tree: Path, no_config: str) -> None:
        """Excluded entries are reported but not measured."""
        _, data = _scan_json(str(tree), "-e", "cache", "--config", no_config)

        entries = data["entries"]
        assert isinstance(entries, list)
        cache = next(e for e in entries if e["name"] == "cache")
        assert cache["flags"] == ["excluded"]
        assert cache["size_on_disk"] is None
        assert cache["items"] == 0

    def test_exclude_from_file(self, tree: Path, tmp_path: Path, no_config: str) -> None:
        """Patterns are read from --exclude-from files."""
        patterns = tmp_path / "patterns"
        patterns.write_text("*.txt\n")

        _, data = _scan_json(str(tree), "-X", str(patterns), "--config", no_config)

        total = data["total"]
        assert isinstance(total, dict)
        assert total["items"] == 5
        entries = data["entries"]
        assert isinstance(entries, list)
        docs = next(e for e in entries if e["name"] == "docs")
        assert docs["items"] == 1

    def test_missing_exclude_file(self, tree: Path, tmp_path: Path, no_config: str) -> None:
        """An unreadable exclude file is an error."""
        result = runner.invoke(
            app, ["scan", str(tree), "-X", str(tmp_path / "nope"), "--config", no_config]
        )

        assert result.exit_code == 1
        assert "Cannot read exclude file" in result.stdout + (result.stderr or "")

    def test_config_defaults_applied(self, tree: Path, tmp_path: Path) -> None:
        """Defaults from the config file are used."""
        config_path = tmp_path / "config.toml"
        config_path.write_text('exclude = ["docs"]\nsort = "name"\n')

        _, data = _scan_json(str(tree), "--config", str(config_path))

        entries = data["entries"]
        assert isinstance(entries, list)
        assert [e["name"] for e in entries] == ["big", "cache", "docs"]
        assert entries[2]["flags"] == ["excluded"]

    def test_invalid_config(self, tree: Path, tmp_path: Path) -> None:
        """An invalid config file stops the command."""
        config_path = tmp_path / "config.toml"
        config_path.write_text("limit = 0\n")

        result = runner.invoke(app, ["scan", str(tree), "--config", str(config_path)])

        assert result.exit_code == 1
        assert "Invalid config content" in result.stdout + (result.stderr or "")

    def test_missing_root(self, tmp_path: Path, no_config: str) -> None:
        """An unusable root aborts with exit code 1."""
        result = runner.invoke(app, ["scan", str(tmp_path / "missing"), "--config", no_config])

        assert result.exit_code == 1
        assert "Cannot resolve" in result.stdout + (result.stderr or "")

    def test_errors_reported(self, tree: Path, no_config: str) -> None:
        """Soft failures are summarized with the last failing path."""
        with patch(
            "dirscan.scanner.walker.read_catalog",
            side_effect=CatalogOpenError("Permission denied"),
        ):
            code, data = _scan_json(str(tree), "--config", no_config)

        assert code == 0
        assert data["outcome"] == "complete_with_errors"
        assert data["error_count"] == 2
        errors = data["errors"]
        assert isinstance(errors, list)
        assert {e["message"] for e in errors} == {"Permission denied"}

    def test_cancelled(self, tree: Path, no_config: str) -> None:
        """A cancelled scan exits with the interrupt status."""
        driver = MagicMock()
        driver.run.return_value = ScanResult(
            root_path=str(tree),
            outcome=ScanOutcome.CANCELLED,
            decision=SinkDecision.CONTINUE,
        )
        driver.error_log.issues = []

        with patch("dirscan.cli.commands.scan.ScanDriver", return_value=driver):
            result = runner.invoke(app, ["scan", str(tree), "--config", no_config])

        assert result.exit_code == EXIT_CANCELLED
        assert "Scan cancelled" in result.stdout + (result.stderr or "")

    def test_ctrl_c_cancels_running_scan(
        self, tree: Path, no_config: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """SIGINT during a scan cancels it and the old handler comes back."""
        previous = signal.getsignal(signal.SIGINT)
        real_lstat = DirectoryCursor.lstat
        fired: list[str] = []

        def interrupting_lstat(self: DirectoryCursor, name: str) -> os.stat_result:
            if not fired:
                fired.append(name)
                handler = signal.getsignal(signal.SIGINT)
                assert callable(handler)
                handler(signal.SIGINT, None)
            return real_lstat(self, name)

        monkeypatch.setattr(DirectoryCursor, "lstat", interrupting_lstat)

        result = runner.invoke(app, ["scan", str(tree), "--config", no_config])

        assert fired
        assert result.exit_code == EXIT_CANCELLED
        assert "Scan cancelled" in result.stdout + (result.stderr or "")
        assert signal.getsignal(signal.SIGINT) is previous

    def test_rejected_results_exit_nonzero(self, tree: Path, no_config: str) -> None:
        """A sink that answers TERMINATE makes the command fail."""
        with patch.object(TreeSink, "finalize", return_value=SinkDecision.TERMINATE):
            result = runner.invoke(app, ["scan", str(tree), "--config", no_config])

        assert result.exit_code == 1
        assert "Scan results were rejected" in result.stdout + (result.stderr or "")

    def test_one_file_system_flag(self, tree: Path, no_config: str) -> None:
        """-x asks the driver to stay on the root filesystem."""
        real_run = ScanDriver.run

        with patch.object(ScanDriver, "run", autospec=True, side_effect=real_run) as run:
            result = runner.invoke(app, ["scan", str(tree), "-x", "--config", no_config])

        assert result.exit_code == 0
        assert run.call_args.args[2] is True

    def test_cross_file_systems_overrides_config(self, tree: Path, tmp_path: Path) -> None:
        """--cross-file-systems wins over one_file_system in the config."""
        config_path = tmp_path / "config.toml"
        config_path.write_text("one_file_system = true\n")
        real_run = ScanDriver.run

        with patch.object(ScanDriver, "run", autospec=True, side_effect=real_run) as run:
            result = runner.invoke(
                app, ["scan", str(tree), "--cross-file-systems", "--config", str(config_path)]
            )

        assert result.exit_code == 0
        assert run.call_args.args[2] is False

    def test_dirs_first(self, tree: Path, no_config: str) -> None:
        """--dirs-first lists directories ahead of files."""
        _, data = _scan_json(str(tree), "--sort", "name", "--dirs-first", "--config", no_config)

        entries = data["entries"]
        assert isinstance(entries, list)
        assert [e["name"] for e in entries] == ["cache", "docs", "big"]

    def test_undecodable_name_in_table(self, tree: Path, no_config: str) -> None:
        """A name that is not UTF-8 is printed with backslash escapes."""
        with open(os.path.join(os.fsencode(tree), b"bad\xff"), "wb") as f:
            f.write(b"x")

        result = runner.invoke(app, ["scan", str(tree), "--config", no_config])

        assert result.exit_code == 0
        assert "bad\\xff" in result.stdout

    def test_undecodable_name_in_json(self, tree: Path, no_config: str) -> None:
        """JSON output carries the escaped name and path."""
        with open(os.path.join(os.fsencode(tree), b"bad\xff"), "wb") as f:
            f.write(b"x")

        code, data = _scan_json(str(tree), "--config", no_config)

        assert code == 0
        entries = data["entries"]
        assert isinstance(entries, list)
        bad = next(e for e in entries if e["name"].startswith("bad"))
        assert bad["name"] == "bad\\xff"
        assert bad["path"] == f"{tree}/bad\\xff"


class TestDescriptorLimit:
    """Tests for raising the open file limit before a scan."""

    def test_raises_soft_to_hard(self) -> None:
        """A low soft limit is lifted to the hard limit."""
        with (
            patch.object(resource, "getrlimit", return_value=(64, 4096)),
            patch.object(resource, "setrlimit") as setrlimit,
        ):
            _raise_descriptor_limit()

        setrlimit.assert_called_once_with(resource.RLIMIT_NOFILE, (4096, 4096))

    def test_unlimited_hard_limit(self) -> None:
        """An unlimited hard limit is capped at a fixed soft limit."""
        limits = (1024, resource.RLIM_INFINITY)
        with (
            patch.object(resource, "getrlimit", return_value=limits),
            patch.object(resource, "setrlimit") as setrlimit,
        ):
            _raise_descriptor_limit()

        setrlimit.assert_called_once_with(
            resource.RLIMIT_NOFILE, (DESCRIPTOR_LIMIT, resource.RLIM_INFINITY)
        )

    def test_already_at_hard_limit(self) -> None:
        """Nothing changes when the soft limit is already the hard one."""
        with (
            patch.object(resource, "getrlimit", return_value=(4096, 4096)),
            patch.object(resource, "setrlimit") as setrlimit,
        ):
            _raise_descriptor_limit()

        setrlimit.assert_not_called()

    def test_refused_change_is_ignored(self) -> None:
        """A refused setrlimit leaves the scan to run with the old limit."""
        with (
            patch.object(resource, "getrlimit", return_value=(64, 4096)),
            patch.object(resource, "setrlimit", side_effect=ValueError("not allowed")),
        ):
            _raise_descriptor_limit()


class TestMainApp:
    """Tests for the top-level application."""

    def test_version(self) -> None:
        """--version prints the version."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "dirscan version" in result.stdout

    def test_no_args_shows_help(self) -> None:
        """Running without a command shows help."""
        result = runner.invoke(app, [])

        assert "scan" in result.stdout
        assert "config" in result.stdout
