"""Tests for cloudbox CLI helpers."""
import logging
import os

import pytest

from cloudbox.cli import (
    CLIError,
    _build_parser,
    _load_env_file,
    _resolve_folder,
    _setup_logging,
    _strip_optional_quotes,
    run_cli,
)
from cloudbox.models import Folder
from cloudbox.orchestrator import NavigationController


@pytest.fixture(autouse=True)
def _restore_logging():
    yield
    logging.disable(logging.NOTSET)
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.WARNING)


def test_strip_optional_quotes():
    assert _strip_optional_quotes("'abc'") == "abc"
    assert _strip_optional_quotes('"abc"') == "abc"
    assert _strip_optional_quotes("'abc") == "'abc"


def test_load_env_file(tmp_path, monkeypatch):
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "# backend",
                "CLOUDBOX_API_URL=http://localhost:8000/api",
                "CLOUDBOX_MAX_PARALLEL='4'",
                "export CLOUDBOX_TIMEOUT=30",
                "not-a-pair",
                "UNRELATED_SETTING=1",
            ]
        ),
        encoding="utf-8",
    )

    monkeypatch.setattr(os, "environ", {"CLOUDBOX_MAX_PARALLEL": "2"})

    _load_env_file(env_path)

    assert os.environ["CLOUDBOX_API_URL"] == "http://localhost:8000/api"
    assert os.environ["CLOUDBOX_MAX_PARALLEL"] == "2"
    assert os.environ["CLOUDBOX_TIMEOUT"] == "30"
    assert "UNRELATED_SETTING" not in os.environ


def test_load_env_file_missing(tmp_path):
    with pytest.raises(CLIError, match="env file not found"):
        _load_env_file(tmp_path / "nope.env")


def test_setup_logging_modes():
    assert _setup_logging(debug=False, silent=False, log_level=None) == "silent"
    assert _setup_logging(debug=True, silent=False, log_level=None) == "DEBUG"
    assert _setup_logging(debug=False, silent=False, log_level="warning") == "WARNING"


def test_parser_upload_command():
    args = _build_parser().parse_args(["-p", "1", "upload", "a.jpg", "b.jpg", "--folder", "Photos"])
    assert args.command == "upload"
    assert args.max_parallel == 1
    assert [str(p) for p in args.paths] == ["a.jpg", "b.jpg"]
    assert args.folder == "Photos"
    assert args.name is None


@pytest.mark.asyncio
async def test_resolve_folder(backend):
    backend.folders = [Folder("42", "Photos")]
    nav = NavigationController(backend)
    await nav.store.load_folders()

    assert _resolve_folder(nav, None) is None
    assert _resolve_folder(nav, "42").name == "Photos"
    assert _resolve_folder(nav, "Photos").id == "42"
    with pytest.raises(CLIError):
        _resolve_folder(nav, "Music")


def test_run_cli_without_command_prints_help(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert run_cli([]) == 0
    assert "usage: cloudbox" in capsys.readouterr().out


def test_run_cli_rejects_bad_env_config(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CLOUDBOX_MAX_PARALLEL", "zero")
    assert run_cli(["folders"]) == 1
    assert "CLOUDBOX_MAX_PARALLEL" in capsys.readouterr().err
