"""
CLI tests against the in-process dev fonts server (--dev).
"""

from collections.abc import Callable
from pathlib import Path

import pytest

from src.app_shell.cli import build_parser, main


@pytest.fixture
def rules_file(tmp_path: Path) -> Path:
    path = tmp_path / "rules.yaml"
    path.write_text(
        "project:\n"
        "  slug: fontdesk\n"
        "  rules_version: '1.0'\n"
        "fonts:\n"
        "  poll_interval_ms: 0\n"
    )
    return path


@pytest.fixture(autouse=True)
def no_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("FONTDESK_API_TOKEN", raising=False)
    monkeypatch.delenv("FONTDESK_API_URL", raising=False)


def run_cli(rules_file: Path, *argv: str) -> int:
    return main(["--dev", "--rules", str(rules_file), *argv])


class TestParser:
    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_apply_defaults(self) -> None:
        args = build_parser().parse_args(["apply"])
        assert args.add == []
        assert args.delete == []
        assert not args.delete_all_custom
        assert not args.yes


class TestCommands:
    def test_missing_rules_file_exits(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc:
            main(["--dev", "--rules", str(tmp_path / "missing.yaml"), "status"])
        assert exc.value.code == 1

    def test_status(self, rules_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert run_cli(rules_file, "status") == 0

        out = capsys.readouterr().out
        assert "Fonts:  3 (0 custom)" in out
        assert "Generating: no" in out

    def test_list_with_filter(self, rules_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert run_cli(rules_file, "list", "--filter", "serif") == 0

        out = capsys.readouterr().out
        assert "Liberation Serif" in out
        assert "DejaVu Sans" not in out
        assert "1 font(s)" in out

    def test_apply_uploads_and_regenerates(
        self,
        rules_file: Path,
        tmp_path: Path,
        font_bytes: Callable[..., bytes],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        font_path = tmp_path / "Lato-Regular.ttf"
        font_path.write_bytes(font_bytes())
        notes = tmp_path / "notes.txt"
        notes.write_text("not a font")

        code = run_cli(rules_file, "apply", "--add", str(font_path), str(notes), "--yes")

        out = capsys.readouterr().out
        assert code == 0
        assert "Queued Lato-Regular.ttf" in out
        assert "Skipping notes.txt" in out
        assert "Started font generation job" in out
        assert "Font cache regenerated successfully." in out

    def test_apply_declined(
        self,
        rules_file: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setattr("builtins.input", lambda prompt="": "n")

        assert run_cli(rules_file, "apply") == 0

        out = capsys.readouterr().out
        assert "Generate font cache?" in out
        assert "Cancelled." in out
        assert "Started" not in out
