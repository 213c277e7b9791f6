from __future__ import annotations

import os

from app.utils.env import default_env_path, load_env_file, parse_env_lines


def test_parse_env_lines_handles_exports_quotes_and_noise() -> None:
  lines = ["# comment", "", "export STUDIO_A=1", "STUDIO_B = 'quoted value'", "NO_EQUALS", "=orphan", 'STUDIO_C="x=y"']

  assert list(parse_env_lines(lines)) == [("STUDIO_A", "1"), ("STUDIO_B", "quoted value"), ("STUDIO_C", "x=y")]


def test_load_env_file_keeps_real_environment_values(tmp_path, monkeypatch) -> None:
  env_file = tmp_path / ".env"
  env_file.write_text("STUDIO_TEST_KEPT=file\nSTUDIO_TEST_NEW=file\n", encoding="utf-8")
  monkeypatch.setenv("STUDIO_TEST_KEPT", "process")
  monkeypatch.delenv("STUDIO_TEST_NEW", raising=False)

  applied = load_env_file(env_file)

  assert applied == ["STUDIO_TEST_NEW"]
  assert os.environ["STUDIO_TEST_KEPT"] == "process"
  assert os.environ["STUDIO_TEST_NEW"] == "file"
  monkeypatch.delenv("STUDIO_TEST_NEW")


def test_load_env_file_ignores_missing_files(tmp_path) -> None:
  assert load_env_file(tmp_path / "absent.env") == []


def test_default_env_path_prefers_the_explicit_override(tmp_path, monkeypatch) -> None:
  monkeypatch.setenv("STUDIO_ENV_FILE", str(tmp_path / "local.env"))

  assert default_env_path() == tmp_path / "local.env"
