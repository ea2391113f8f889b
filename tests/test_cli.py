"""Tests for the nuspect command line surface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from nuspect_cli import cli
from nuspect_core.introspect import Introspector
from nuspect_core.metadata import ModuleLoader


@pytest.fixture
def wired(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, source, reader, archive_factory, module_factory):
    widget = {
        "name": "IWidget",
        "namespace": "Acme",
        "members": [{"kind": "property", "name": "Size", "type": "int", "get": True}],
    }
    archive = archive_factory([("lib/net6.0/Acme.dll", module_factory(widget))])
    source.add("Acme", "1.0.0", archive)
    source.add("Acme", "1.1.0", archive)
    monkeypatch.setenv("NUSPECT_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setattr(
        cli,
        "_introspector",
        lambda args, settings: Introspector(source, loader=ModuleLoader(reader)),
    )
    return source


def _run(argv: list[str], tmp_path: Path) -> int:
    return cli.main(["--config", str(tmp_path / "none.toml"), *argv])


def test_parser_defaults() -> None:
    args = cli.build_parser().parse_args(["describe", "Acme", "IWidget"])
    assert args.command == "describe"
    assert args.package_version is None
    assert args.no_cache is False


def test_no_command_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main([]) == 0
    assert "usage: nuspect" in capsys.readouterr().out


def test_describe_prints_declaration(wired, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(["describe", "Acme", "IWidget", "--package-version", "1.0.0"], tmp_path) == 0

    out = capsys.readouterr().out
    assert "/* C# INTERFACE FROM Acme.dll */" in out
    assert "int Size { get; }" in out
    assert wired.calls == [("fetch_archive", "Acme", "1.0.0")]


def test_describe_miss_is_not_an_error(wired, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(["describe", "Acme", "IMissing"], tmp_path) == 0
    assert "Interface 'IMissing' not found in package Acme." in capsys.readouterr().out


def test_list_json(wired, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(["list", "Acme", "--format", "json"], tmp_path) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["version"] == "1.1.0"
    assert payload["types"] == [{"name": "IWidget", "full_name": "Acme.IWidget", "module": "Acme.dll"}]


def test_list_text(wired, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(["list", "Acme"], tmp_path) == 0

    out = capsys.readouterr().out
    assert "[nuspect] Acme 1.1.0 interfaces=1" in out
    assert "Acme.IWidget" in out


def test_versions(wired, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(["versions", "Acme"], tmp_path) == 0
    assert capsys.readouterr().out.split() == ["1.0.0", "1.1.0"]


def test_source_errors_exit_with_status_one(wired, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(["describe", "Unknown", "IWidget"], tmp_path) == 1
    assert "[nuspect] error: package 'Unknown' was not found" in capsys.readouterr().err


def test_blank_query_exits_with_status_one(wired, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(["describe", "Acme", " "], tmp_path) == 1
    assert "must not be empty" in capsys.readouterr().err
    assert wired.calls == []


def test_cache_clear(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    cache_dir = tmp_path / "cache"
    (cache_dir / "acme" / "1.0.0").mkdir(parents=True)
    (cache_dir / "acme" / "1.0.0" / "acme.1.0.0.nupkg").write_bytes(b"x")
    monkeypatch.setenv("NUSPECT_CACHE_DIR", str(cache_dir))

    assert _run(["cache", "clear"], tmp_path) == 0

    assert "removed 1 cached archive(s)" in capsys.readouterr().out
    assert not list(cache_dir.rglob("*.nupkg"))


def test_invalid_environment_setting_is_reported_not_raised(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("NUSPECT_TIMEOUT", "abc")

    assert _run(["versions", "Acme"], tmp_path) == 1

    err = capsys.readouterr().err
    assert err.startswith("[nuspect] error: NUSPECT_TIMEOUT must be a number of seconds")
    assert "Traceback" not in err
