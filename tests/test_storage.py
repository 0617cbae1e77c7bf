import datetime as dt
from pathlib import Path

import pytest

from mysqldiff.collectors import collect_ddl_dir
from mysqldiff.models import SchemaDescription
from mysqldiff.parser import parse_create_table
from mysqldiff.storage import read_text, write_ddl_dir, write_output, write_text


def test_read_text_missing_returns_empty(tmp_path: Path) -> None:
    assert read_text(tmp_path / "missing.txt") == ""


def test_write_text_normalizes_newlines(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "file.txt"
    write_text(path, "a\r\nb\rc")
    assert read_text(path) == "a\nb\nc"


def test_write_output_console(capsys: pytest.CaptureFixture) -> None:
    assert write_output('{"tables": []}', "console") == "console"
    assert capsys.readouterr().out == '{"tables": []}\n'


def test_write_output_file(tmp_path: Path) -> None:
    path = tmp_path / "out" / "diff.json"
    where = write_output("{}", str(path))
    assert where == str(path.resolve())
    assert path.read_text(encoding="utf-8") == "{}\n"


def test_write_ddl_dir_reads_back(tmp_path: Path) -> None:
    schema = SchemaDescription(
        (
            parse_create_table("CREATE TABLE `order items` (id INT)"),
            parse_create_table("CREATE TABLE b (id INT);"),
        ),
        dt.datetime(2024, 1, 1),
    )
    files = write_ddl_dir(schema, tmp_path / "ddl")
    assert [p.name for p in files] == ["order_items.sql", "b.sql"]
    assert (tmp_path / "ddl" / "b.sql").read_text(encoding="utf-8") == "CREATE TABLE b (id INT);\n"

    collected = collect_ddl_dir(tmp_path / "ddl")
    assert sorted(collected.schema.table_names()) == ["b", "order items"]


def test_write_ddl_dir_colliding_names(tmp_path: Path) -> None:
    schema = SchemaDescription(
        (
            parse_create_table("CREATE TABLE `a b` (id INT)"),
            parse_create_table("CREATE TABLE a_b (id INT)"),
            parse_create_table("CREATE TABLE `A_B` (id INT)"),
        ),
        dt.datetime(2024, 1, 1),
    )
    files = write_ddl_dir(schema, tmp_path / "ddl")
    assert [p.name for p in files] == ["a_b.sql", "a_b_2.sql", "A_B_3.sql"]

    collected = collect_ddl_dir(tmp_path / "ddl")
    assert sorted(collected.schema.table_names()) == ["A_B", "a b", "a_b"]
