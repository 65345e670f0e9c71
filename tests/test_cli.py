from __future__ import annotations

import json
from pathlib import Path

import pytest

from csvdiff import cli
from csvdiff.entrypoints import default_output_path, run_diff
from csvdiff.errors import SourceError


def write_csv(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_cli_generates_default_html_report(tmp_path, capsys):
    old = write_csv(tmp_path / "old.csv", "id,name\n1,Ann\n2,Bob\n")
    new = write_csv(tmp_path / "new.csv", "id,name\n2,Robert\n3,Cy\n")

    exit_code = cli.main([str(old), str(new), "-k", "id"])

    assert exit_code == cli.EXIT_SUCCESS
    report_path = tmp_path / "Diff_old_to_new.html"
    assert report_path.exists()
    assert 'id="csv-diff-data"' in report_path.read_text(encoding="utf-8")

    captured = capsys.readouterr()
    assert (
        "Diff summary | added: 1 | deleted: 1 | updated: 1 | moved: 0 | unchanged: 0"
        in captured.out
    )
    assert str(report_path) in captured.out


def test_cli_json_output_with_explicit_path(tmp_path):
    old = write_csv(tmp_path / "old.csv", "id,name\n1,Ann\n")
    new = write_csv(tmp_path / "new.csv", "id,name\n1,ann\n")
    destination = tmp_path / "reports" / "diff.json"

    exit_code = cli.main(
        [str(old), str(new), "-k", "id", "--ignore-case", "--format", "JSON", "-o", str(destination)]
    )

    assert exit_code == cli.EXIT_SUCCESS
    payload = json.loads(destination.read_text(encoding="utf-8"))
    assert payload["summary"]["updated"] == 0
    assert payload["summary"]["unchanged"] == 1
    assert payload["entries"] == []


def test_cli_reads_headerless_tab_files(tmp_path):
    old = write_csv(tmp_path / "old.tsv", "1\tAnn\n2\tBob\n")
    new = write_csv(tmp_path / "new.tsv", "1\tAnn\n2\tBobby\n")
    destination = tmp_path / "diff.json"

    exit_code = cli.main(
        [
            str(old),
            str(new),
            "-f",
            "id,name",
            "--no-header",
            "-d",
            "TAB",
            "-k",
            "id",
            "--format",
            "json",
            "-o",
            str(destination),
        ]
    )

    assert exit_code == cli.EXIT_SUCCESS
    payload = json.loads(destination.read_text(encoding="utf-8"))
    assert payload["entries"][0]["delta"] == [{"field": "name", "from": "Bob", "to": "Bobby"}]


def test_cli_reports_missing_key_field(tmp_path, capsys):
    old = write_csv(tmp_path / "old.csv", "id,name\n1,Ann\n")
    new = write_csv(tmp_path / "new.csv", "id,name\n1,Ann\n")

    exit_code = cli.main([str(old), str(new), "-k", "code"])

    assert exit_code == cli.EXIT_FAILURE
    captured = capsys.readouterr()
    assert "Error: Unable to resolve key field 'code'" in captured.err
    assert not (tmp_path / "Diff_old_to_new.html").exists()


def test_cli_requires_key_fields(tmp_path, capsys):
    old = write_csv(tmp_path / "old.csv", "id,name\n1,Ann\n")
    new = write_csv(tmp_path / "new.csv", "id,name\n1,Ann\n")

    exit_code = cli.main([str(old), str(new)])

    assert exit_code == cli.EXIT_FAILURE
    assert "key_fields" in capsys.readouterr().err


def test_cli_schema_mismatch_and_common_fields(tmp_path, capsys):
    old = write_csv(tmp_path / "old.csv", "id,name\n1,Ann\n")
    new = write_csv(tmp_path / "new.csv", "id,name,email\n1,Ann,ann@example.com\n")

    assert cli.main([str(old), str(new), "-k", "id"]) == cli.EXIT_FAILURE
    assert "only in TO: email" in capsys.readouterr().err

    exit_code = cli.main([str(old), str(new), "-k", "id", "-C", "--format", "txt"])
    assert exit_code == cli.EXIT_SUCCESS
    text = (tmp_path / "Diff_old_to_new.txt").read_text(encoding="utf-8")
    assert "No differences found." in text


def test_cli_warns_about_duplicates_and_empty_sources(tmp_path, capsys):
    old = write_csv(tmp_path / "old.csv", "id,name\n")
    new = write_csv(tmp_path / "new.csv", "id,name\n1,Ann\n1,Again\n")

    exit_code = cli.main([str(old), str(new), "-k", "id", "--format", "csv"])

    assert exit_code == cli.EXIT_SUCCESS
    captured = capsys.readouterr()
    assert "seen 2 times in TO" in captured.err
    assert "Note: old.csv contains no records" in captured.err
    assert "new.csv: duplicate TO keys 1" in captured.out


def test_cli_uses_config_defaults_beside_from_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    data = tmp_path / "data"
    old = write_csv(data / "old.csv", "id;name;stamp\n1;Ann;a\n")
    new = write_csv(data / "new.csv", "id;name;stamp\n1;Ann;b\n")
    (data / ".csvdiff.toml").write_text(
        "[defaults]\n"
        'key_fields = ["id"]\n'
        'delimiter = ";"\n'
        'ignore_fields = ["stamp"]\n'
        'format = "json"\n',
        encoding="utf-8",
    )

    assert cli.main([str(old), str(new)]) == cli.EXIT_SUCCESS
    payload = json.loads((data / "Diff_old_to_new.json").read_text(encoding="utf-8"))
    assert payload["meta"]["compared_fields"] == ["id", "name"]
    assert payload["summary"]["unchanged"] == 1

    assert cli.main([str(old), str(new), "-I", "name", "--format", "json"]) == cli.EXIT_SUCCESS
    payload = json.loads((data / "Diff_old_to_new.json").read_text(encoding="utf-8"))
    assert payload["summary"]["updated"] == 1
    assert payload["entries"][0]["delta"] == [{"field": "stamp", "from": "a", "to": "b"}]


def test_cli_directory_mode_with_file_types(tmp_path, capsys):
    before = tmp_path / "before"
    after = tmp_path / "after"
    write_csv(before / "orders_1.csv", "customer,order,qty\nC1,O1,1\nC1,O2,2\n")
    write_csv(after / "orders_1.csv", "customer,order,qty\nC1,O2,2\nC1,O1,5\n")
    write_csv(before / "people.csv", "id,name\n1,Ann\n")
    write_csv(after / "people.csv", "id,name\n1,Ann\n")
    write_csv(before / "orphan.csv", "id,name\n1,Ann\n")
    (before / ".csvdiff.toml").write_text(
        "[file_types.orders]\n"
        'pattern = "orders_*.csv"\n'
        'parent_fields = ["customer"]\n'
        'child_fields = ["order"]\n'
        "\n"
        "[file_types.people]\n"
        'pattern = "people*.csv"\n'
        'key_fields = ["id"]\n',
        encoding="utf-8",
    )

    exit_code = cli.main([str(before), str(after), "*.csv", "--format", "json"])

    assert exit_code == cli.EXIT_SUCCESS
    report_path = before / "Diff_before_to_after.json"
    payload = json.loads(report_path.read_text(encoding="utf-8"))
    assert payload["meta"]["files"] == 2
    assert payload["summary"]["updated"] == 1
    files = {item["meta"]["from"]: item for item in payload["files"]}
    assert sorted(files) == ["orders_1.csv", "people.csv"]
    orders = files["orders_1.csv"]
    assert orders["meta"]["parent_fields"] == ["customer"]
    assert orders["summary"]["updated"] == 1
    assert orders["summary"]["moved"] == 2
    assert not (before / "Diff_before_to_after").exists()

    captured = capsys.readouterr()
    assert "no matching TO file for orphan.csv" in captured.err
    assert "Generated reports:" in captured.out
    assert f"  - {report_path}" in captured.out

    only = tmp_path / "only.txt"
    exit_code = cli.main(
        [str(before), str(after), "-t", "peo*", "--format", "txt", "-o", str(only)]
    )
    assert exit_code == cli.EXIT_SUCCESS
    text = only.read_text(encoding="utf-8")
    assert text.startswith("csv-diff directory report: before -> after")
    assert "csv-diff report: people.csv -> people.csv" in text
    assert "orders_1.csv" not in text


def test_directory_rerun_skips_its_own_report(tmp_path):
    before = tmp_path / "before"
    after = tmp_path / "after"
    write_csv(before / "people.csv", "id,name\n1,Ann\n")
    write_csv(after / "people.csv", "id,name\n1,Anne\n")

    for _ in range(2):
        result = run_diff(before, after, settings={"key_fields": ["id"]}, report_format="csv")

    assert result.produced == [before / "Diff_before_to_after.csv"]
    assert [pair.left.name for pair in result.pairs] == ["people.csv"]
    assert result.skipped == []


def test_cli_unknown_file_type_is_an_error(tmp_path, capsys):
    old = write_csv(tmp_path / "old.csv", "id\n1\n")
    new = write_csv(tmp_path / "new.csv", "id\n1\n")

    exit_code = cli.main([str(old), str(new), "-k", "id", "-t", "orders"])

    assert exit_code == cli.EXIT_FAILURE
    assert "file_types" in capsys.readouterr().err


def test_cli_rejects_unknown_format(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["a.csv", "b.csv", "--format", "pdf"])

    assert excinfo.value.code == cli.EXIT_USAGE


def test_default_output_path(tmp_path):
    old = write_csv(tmp_path / "in" / "old.csv", "id\n")
    new = write_csv(tmp_path / "new.csv", "id\n")

    assert default_output_path(old, new, "xls") == tmp_path / "in" / "Diff_old_to_new.xlsx"
    assert default_output_path(tmp_path / "in", tmp_path, "htm") == (
        tmp_path / "in" / f"Diff_in_to_{tmp_path.name}.html"
    )


def test_run_diff_validates_paths(tmp_path):
    old = write_csv(tmp_path / "old.csv", "id\n1\n")

    with pytest.raises(SourceError, match="TO not found"):
        run_diff(old, tmp_path / "missing.csv", overrides={"key_fields": "id"})
    with pytest.raises(SourceError, match="both be files or both be directories"):
        run_diff(old, tmp_path, overrides={"key_fields": "id"})


def test_run_diff_returns_structured_result(tmp_path):
    old = write_csv(tmp_path / "old.csv", "id,name\n1,Ann\n")
    new = write_csv(tmp_path / "new.csv", "id,name\n1,Anne\n")

    result = run_diff(
        old,
        new,
        settings={"key_fields": ["id"]},
        output=tmp_path / "diff.txt",
        report_format="txt",
    )

    assert result.produced == [tmp_path / "diff.txt"]
    assert result.has_differences
    assert result.totals()["updated"] == 1
    assert result.pairs[0].report.updated[0].changed_fields() == ["name"]
