"""End-to-end tests for the mysqldiff command line."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from mysqldiff.cli import main
from mysqldiff.collectors import Q_LIST_TABLES
from mysqldiff.snapshots import loads_schema

LEFT = """CREATE TABLE users (
  id INT NOT NULL,
  email VARCHAR(255) COMMENT 'contact',
  PRIMARY KEY (id)
) ENGINE=InnoDB;
CREATE TABLE legacy (id INT);
"""

RIGHT = """CREATE TABLE users (
  id INT NOT NULL,
  email VARCHAR(255) COMMENT 'primary contact',
  PRIMARY KEY (id),
  KEY idx_email (email)
) ENGINE=InnoDB;
"""


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run in an empty directory with two DDL files."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / "left.sql").write_text(LEFT, encoding="utf-8")
    (tmp_path / "right.sql").write_text(RIGHT, encoding="utf-8")
    return tmp_path


class TestDump:
    """Tests for the dump command."""

    def test_dump_to_file(self, workdir: Path, capsys: pytest.CaptureFixture) -> None:
        """Test a DDL file is dumped as a JSON snapshot."""
        out = workdir / "out" / "left.json"
        assert main(["dump", "left.sql", "--to", str(out)]) == 0
        schema = loads_schema(out.read_text(encoding="utf-8"))
        assert schema.table_names() == ("users", "legacy")
        assert "2 table descriptions have been written" in capsys.readouterr().err

    def test_dump_to_console(self, workdir: Path, capsys: pytest.CaptureFixture) -> None:
        """Test console output is the compact JSON document."""
        assert main(["dump", "right.sql"]) == 0
        out = capsys.readouterr().out
        assert json.loads(out)["tables"][0]["name"] == "users"
        assert out.count("\n") == 1

    def test_dump_ddl_dir(self, workdir: Path) -> None:
        """Test one .sql file per table is written."""
        assert main(["dump", "left.sql", "--to", "snap.json", "--ddl-dir", "ddl"]) == 0
        assert sorted(p.name for p in (workdir / "ddl").iterdir()) == ["legacy.sql", "users.sql"]

    def test_dump_filtered(self, workdir: Path, capsys: pytest.CaptureFixture) -> None:
        """Test --exclude drops tables."""
        assert main(["dump", "left.sql", "--exclude", "leg%"]) == 0
        assert [t["name"] for t in json.loads(capsys.readouterr().out)["tables"]] == ["users"]


class TestDiff:
    """Tests for the diff command."""

    def test_no_differences(self, workdir: Path, capsys: pytest.CaptureFixture) -> None:
        """Test identical sources print the no-difference message."""
        assert main(["diff", "left.sql", "left.sql", "--fail-on-diff"]) == 0
        assert "(No differences.)" in capsys.readouterr().out

    def test_differences_to_console(self, workdir: Path, capsys: pytest.CaptureFixture) -> None:
        """Test the diff JSON is printed, pretty by default."""
        assert main(["diff", "left.sql", "right.sql"]) == 0
        out = capsys.readouterr().out
        payload = json.loads(out)
        assert payload["tables"] == [{"left": {"name": "legacy", "sql": "CREATE TABLE legacy (id INT);"}, "right": None}]
        detail = payload["insideTables"][0]
        assert detail["name"] == "users"
        assert detail["indexes"] == [{"left": None, "right": "KEY idx_email (email)"}]
        assert len(detail["columns"]) == 1
        assert "\n  " in out

    def test_ignore_and_filter(self, workdir: Path, capsys: pytest.CaptureFixture) -> None:
        """Test --ignore removes comment changes and --include narrows tables."""
        assert main(["diff", "left.sql", "right.sql", "--ignore", "comment", "--include", "users"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["tables"] == []
        assert payload["insideTables"][0]["columns"] == []

    def test_fail_on_diff(self, workdir: Path) -> None:
        """Test --fail-on-diff returns 1 when differences exist."""
        assert main(["diff", "left.sql", "right.sql", "--to", "diff.json", "--fail-on-diff"]) == 1
        assert json.loads((workdir / "diff.json").read_text(encoding="utf-8"))["insideTables"]

    def test_summary(self, workdir: Path) -> None:
        """Test --summary writes a Markdown report."""
        main(["diff", "left.sql", "right.sql", "--to", "diff.json", "--summary", "SUMMARY.md"])
        content = (workdir / "SUMMARY.md").read_text(encoding="utf-8")
        assert "# MySQL Schema Diff Summary" in content
        assert "+ KEY idx_email (email)" in content

    def test_unknown_feature_exits(self, workdir: Path) -> None:
        """Test an unknown ignore feature stops the command."""
        with pytest.raises(SystemExit, match="unknown sql feature"):
            main(["diff", "left.sql", "right.sql", "--ignore", "charset"])

    def test_unknown_source_exits(self, workdir: Path) -> None:
        """Test an unresolvable source is reported as an error."""
        with pytest.raises(SystemExit, match="ERROR: unknown source"):
            main(["diff", "left.sql", "missing"])

    def test_config_connection(self, workdir: Path, capsys: pytest.CaptureFixture) -> None:
        """Test a configured connection is collected through the mysql client."""
        (workdir / "config.yml").write_text(
            "pretty: false\n"
            "connections:\n"
            "  staging:\n"
            "    host: 127.0.0.1\n"
            "    user: app\n"
            "    database: shop\n",
            encoding="utf-8",
        )

        def fake_run_sql(target, query):
            if query == Q_LIST_TABLES:
                return "users\tBASE TABLE\n"
            return "users\t" + RIGHT.strip().rstrip(";") + "\n"

        with patch("mysqldiff.cli.ensure_mysql_cli"), patch("mysqldiff.collectors.run_sql", side_effect=fake_run_sql):
            assert main(["diff", "staging", "right.sql"]) == 0

        captured = capsys.readouterr()
        assert "(No differences.)" in captured.out
        assert "connection[name='staging']" in captured.err

    def test_unused_broken_connection_is_ignored(
        self, workdir: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
    ) -> None:
        """Test a file-to-file diff runs even when the config has an incomplete connection."""
        monkeypatch.delenv("MYSQLDIFF_BROKEN_HOST", raising=False)
        (workdir / "config.yml").write_text(
            "connections:\n  broken:\n    user: app\n    database: shop\n",
            encoding="utf-8",
        )
        assert main(["diff", "left.sql", "right.sql"]) == 0
        assert "MYSQLDIFF_BROKEN_HOST" not in capsys.readouterr().err


class TestPing:
    """Tests for the ping command."""

    def test_ping(self, workdir: Path, capsys: pytest.CaptureFixture) -> None:
        """Test a reachable connection returns 0."""
        cfg = workdir / "my.yml"
        cfg.write_text("connections:\n  prod:\n    host: h\n    user: u\n    database: d\n", encoding="utf-8")
        with patch("mysqldiff.cli.ensure_mysql_cli"), patch(
            "mysqldiff.cli.connection_test", return_value=(True, "8.0.36")
        ):
            assert main(["--config", str(cfg), "ping", "prod"]) == 0
        assert "OK" in capsys.readouterr().out

    def test_ping_failure(self, workdir: Path) -> None:
        """Test an unreachable connection returns 1."""
        cfg = workdir / "my.yml"
        cfg.write_text("connections:\n  prod:\n    host: h\n    user: u\n    database: d\n", encoding="utf-8")
        with patch("mysqldiff.cli.ensure_mysql_cli"), patch(
            "mysqldiff.cli.connection_test", return_value=(False, "__ERROR__\t2003\tCan't connect")
        ):
            assert main(["--config", str(cfg), "ping", "prod"]) == 1
