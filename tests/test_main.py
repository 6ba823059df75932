import io
from datetime import datetime, timezone

import pytest

from timeskwire import main as cli
from timeskwire.errors import ConfigError, ParseError, SinkFailureError, UnknownKindError

NOW = datetime(2024, 1, 3, 12, 0, tzinfo=timezone.utc)

BODY = """[
{"id":2,"start":"20240101T090000Z","end":"20240101T100000Z","tags":["work"]},
{"id":1,"start":"20240101T100000Z","end":"20240101T103000Z","tags":["meeting"]}
]
"""


def extension_input(output, body=BODY, **extra) -> str:
    header = {
        "temp.version": "1.7.1",
        "temp.report.start": "20240101T000000Z",
        "temp.report.end": "20240102T000000Z",
        "timeskwire.report.kind": "default",
        "timeskwire.report.filename": str(output),
        **extra,
    }
    lines = [f"{key}: {value}" for key, value in header.items()]
    return "\n".join(lines) + "\n\n" + body


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("TIMESKWIRE_REPORT", raising=False)


def test_run_report_writes_pdf_and_summary(tmp_path) -> None:
    output = tmp_path / "report.pdf"
    out = io.StringIO()

    model = cli.run_report(io.StringIO(extension_input(output)), out, {}, now=NOW)

    assert output.read_bytes().startswith(b"%PDF")
    assert [group.label for group in model.groups] == ["work", "meeting"]
    assert model.grand_total_seconds == 90 * 60
    summary = out.getvalue()
    assert "TimeWarrior version 1.7.1" in summary
    assert "Total time logged: 01:30:00" in summary
    assert "work: 01:00:00 (66.67%)" in summary
    assert "meeting: 00:30:00 (33.33%)" in summary


def test_parse_error_leaves_no_file(tmp_path) -> None:
    output = tmp_path / "report.pdf"
    text = extension_input(output, body="start: 20240101T090000Z\nend: 20240101T100000Z\n\nstart: not-a-date\n")

    with pytest.raises(ParseError) as excinfo:
        cli.run_report(io.StringIO(text), io.StringIO(), {}, now=NOW)

    # five header lines and the separator come first
    assert excinfo.value.line == 10
    assert not output.exists()


def test_config_error_precedes_parsing(tmp_path) -> None:
    text = extension_input(tmp_path / "report.pdf", body="start: garbage\n", **{"timeskwire.report.bogus": "1"})

    with pytest.raises(ConfigError):
        cli.run_report(io.StringIO(text), io.StringIO(), {}, now=NOW)


def test_unknown_kind_precedes_parsing(tmp_path) -> None:
    text = extension_input(tmp_path / "report.pdf", body="start: garbage\n")

    with pytest.raises(UnknownKindError):
        cli.run_report(io.StringIO(text), io.StringIO(), {"TIMESKWIRE_REPORT": "weekly"}, now=NOW)


def test_render_failure_removes_partial_file(monkeypatch, tmp_path) -> None:
    output = tmp_path / "report.pdf"

    def broken_render(layout, sink):
        output.write_bytes(b"%PDF-1.4 trunc")
        raise SinkFailureError("disk full")

    monkeypatch.setattr(cli, "render", broken_render)

    with pytest.raises(SinkFailureError):
        cli.run_report(io.StringIO(extension_input(output)), io.StringIO(), {}, now=NOW)
    assert not output.exists()


def test_main_reports_errors_on_one_line(monkeypatch, capsys, tmp_path) -> None:
    text = extension_input(tmp_path / "report.pdf", body="start: not-a-date\n")
    monkeypatch.setattr("sys.stdin", io.StringIO(text))

    assert cli.main([]) == 1

    err = capsys.readouterr().err
    assert err.startswith("timeskwire: ParseError: line 7: malformed timestamp")
    assert err.count("\n") == 1


def test_main_success_exit_code(monkeypatch, capsys, tmp_path) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO(extension_input(tmp_path / "report.pdf")))

    assert cli.main([]) == 0
    assert "Report written to" in capsys.readouterr().out


def test_init_links_executable(monkeypatch, capsys, tmp_path) -> None:
    executable = tmp_path / "bin" / "timeskwire"
    executable.parent.mkdir()
    executable.write_text("#!/bin/sh\n")
    extensions = tmp_path / "extensions"
    extensions.mkdir()
    monkeypatch.setattr(cli, "current_executable", lambda: executable)

    assert cli.main(["init", str(extensions)]) == 0
    assert (extensions / "timeskwire").resolve() == executable.resolve()
    assert "Init OK" in capsys.readouterr().out

    assert cli.main(["init", str(extensions)]) == 1
    assert "already exists" in capsys.readouterr().err

    assert cli.main(["init", str(extensions), "--force"]) == 0


def test_init_requires_existing_directory(capsys, tmp_path) -> None:
    assert cli.main(["init", str(tmp_path / "nope")]) == 1
    assert "No such file or directory" in capsys.readouterr().err


def test_invalid_utf8_is_a_parse_error(monkeypatch, capsys, tmp_path) -> None:
    text = extension_input(tmp_path / "report.pdf", body="start: 20240101T090000Z\ntags: caf")
    raw = text.encode("utf-8") + b"\xff\xfe\n"
    monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(raw), encoding="utf-8"))

    assert cli.main([]) == 1

    err = capsys.readouterr().err
    assert err.startswith("timeskwire: ParseError: line 8: input is not valid UTF-8")
    assert not (tmp_path / "report.pdf").exists()
