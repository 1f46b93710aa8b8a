"""Tests for .env discovery used by the CLI."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

from docbinder.cli_config import load_config


def _call(tmp_path: Path, *, example: bool = True, copy_file=None):
    cwd = tmp_path / "cwd"
    cwd.mkdir(exist_ok=True)
    config_dir = tmp_path / "config"
    example_file = tmp_path / ".env.example"
    if example:
        example_file.write_text("DOCBINDER_CONCURRENCY=3\n")
    load_env = MagicMock(return_value=True)

    def _copy(src, dst):
        Path(dst).write_text(Path(src).read_text())
        return str(dst)

    loaded = load_config(
        config_dir=config_dir,
        config_env_file=config_dir / ".env",
        cwd=cwd,
        load_env=load_env,
        copy_file=copy_file or _copy,
        example_file=example_file,
    )
    return loaded, load_env, cwd, config_dir


def test_local_env_wins(tmp_path: Path):
    (tmp_path / "cwd").mkdir()
    (tmp_path / "cwd" / ".env").write_text("A=1\n")
    loaded, load_env, cwd, _ = _call(tmp_path)
    assert loaded == cwd / ".env"
    load_env.assert_called_once_with(cwd / ".env")


def test_user_config_used_when_no_local_env(tmp_path: Path):
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / ".env").write_text("A=1\n")
    loaded, load_env, _, config_dir = _call(tmp_path)
    assert loaded == config_dir / ".env"
    load_env.assert_called_once_with(config_dir / ".env")


def test_example_copied_on_first_run(tmp_path: Path):
    loaded, load_env, _, config_dir = _call(tmp_path)
    assert loaded == config_dir / ".env"
    assert (config_dir / ".env").read_text() == "DOCBINDER_CONCURRENCY=3\n"
    load_env.assert_called_once_with(config_dir / ".env")


def test_nothing_to_load(tmp_path: Path):
    loaded, load_env, _, _ = _call(tmp_path, example=False)
    assert loaded is None
    load_env.assert_not_called()


def test_copy_error_is_tolerated(tmp_path: Path):
    loaded, load_env, _, _ = _call(
        tmp_path, copy_file=MagicMock(side_effect=PermissionError("read-only"))
    )
    assert loaded is None
    load_env.assert_not_called()
