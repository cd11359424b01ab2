"""Tests for the mathsyntax CLI, config, and error rendering."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from mathsyntax.cli import main
from mathsyntax.config import find_config, load_config
from mathsyntax.errors import Diagnostic, DiagnosticLabel, DiagnosticRenderer, Severity
from mathsyntax.project import scaffold
from mathsyntax.source import Range, Span, line_col, range_to_span
from mathsyntax.syntax import Syntax


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def tmp_project(tmp_path):
    """Create a minimal mathsyntax project in a temp dir."""
    toml = tmp_path / "mathsyntax.toml"
    toml.write_text(
        '[package]\nname = "testproj"\nversion = "1.0.0"\n'
        '[check]\nsources = ["src/**/*.sig"]\n'
        "[output]\ncolor = false\n"
    )
    src = tmp_path / "src"
    src.mkdir()
    (src / "main.sig").write_text("pub mod nat;\nzero: nat;\npub fn succ(n: nat) -> nat;\n")
    return tmp_path


# --- CLI tests ---


class TestCLI:
    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "check" in result.output
        assert "new" in result.output
        assert "rules" in result.output
        assert "view" in result.output
        assert "lsp" in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_check_file(self, runner, tmp_project):
        result = runner.invoke(main, ["check", str(tmp_project / "src" / "main.sig")])
        assert result.exit_code == 0
        assert "checked 1 file(s), no errors" in result.output

    def test_check_bad_file(self, runner, tmp_path):
        bad = tmp_path / "bad.sig"
        bad.write_text("use foo::bar\n")
        result = runner.invoke(main, ["check", "--no-color", str(bad)])
        assert result.exit_code == 1
        assert "error[E101]" in result.output
        assert "expected token `;`" in result.output
        assert f"{bad}:1:13" in result.output
        assert "note: in rule #" in result.output

    def test_check_invalid_utf8(self, runner, tmp_path):
        latin = tmp_path / "latin.sig"
        latin.write_bytes(b"mod \xff\xfe;\n")
        result = runner.invoke(main, ["check", "--no-color", str(latin)])
        assert result.exit_code == 1
        assert "error[E001]" in result.output
        assert "could not read" in result.output

    def test_check_directory(self, runner, tmp_project):
        (tmp_project / "src" / "nested").mkdir()
        (tmp_project / "src" / "nested" / "bool.sig").write_text("true: bool;\n")
        (tmp_project / "src" / "notes.txt").write_text("not checked")
        result = runner.invoke(main, ["check", str(tmp_project / "src")])
        assert result.exit_code == 0
        assert "checked 2 file(s), no errors" in result.output

    def test_check_empty_directory(self, runner, tmp_path):
        result = runner.invoke(main, ["check", str(tmp_path)])
        assert result.exit_code == 0
        assert "no .sig files found" in result.output

    def test_check_with_project(self, runner, tmp_project, monkeypatch):
        monkeypatch.chdir(tmp_project / "src")
        result = runner.invoke(main, ["check"])
        assert result.exit_code == 0
        assert "checking testproj" in result.output
        assert "checked 1 file(s), no errors" in result.output

    def test_check_project_error(self, runner, tmp_project, monkeypatch):
        (tmp_project / "src" / "z.sig").write_text("mod broken\n")
        monkeypatch.chdir(tmp_project)
        result = runner.invoke(main, ["check"])
        assert result.exit_code == 1
        assert "z.sig:1:11" in result.output
        # [output] color = false
        assert "\033[" not in result.output

    def test_check_without_config(self, runner, tmp_path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(main, ["check"])
            assert result.exit_code == 1
            assert "no mathsyntax.toml found" in result.output

    def test_new_creates_project(self, runner, tmp_path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(main, ["new", "hello"])
            assert result.exit_code == 0
            assert "created project 'hello'" in result.output

            project = Path("hello")
            assert (project / "mathsyntax.toml").exists()
            assert (project / "src" / "main.sig").exists()
            assert (project / ".gitignore").exists()

            toml_text = (project / "mathsyntax.toml").read_text()
            assert 'name = "hello"' in toml_text

            readme_text = (project / "README.md").read_text()
            assert "# hello" in readme_text

    def test_new_project_passes_check(self, runner, tmp_path, monkeypatch):
        project = scaffold("hello", tmp_path)
        monkeypatch.chdir(project)
        result = runner.invoke(main, ["check"])
        assert result.exit_code == 0
        assert "checking hello" in result.output
        assert "checked 1 file(s), no errors" in result.output

    def test_new_existing_dir_fails(self, runner, tmp_path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            Path("hello").mkdir()
            result = runner.invoke(main, ["new", "hello"])
            assert result.exit_code == 1
            assert "already exists" in result.output

    def test_rules(self, runner):
        result = runner.invoke(main, ["rules"])
        assert result.exit_code == 0
        names = result.output.split()
        assert "fn" in names
        assert "member_lambda" in names
        assert len(names) == 12

    def test_view_command(self, runner, tmp_path):
        sig = tmp_path / "nat.sig"
        sig.write_text("pub mod nat;\n")
        result = runner.invoke(main, ["view", str(sig)])
        assert result.exit_code == 0
        assert result.output.splitlines() == ["module", "  name: 'nat'"]

    def test_view_nested(self, runner, tmp_path):
        sig = tmp_path / "use.sig"
        sig.write_text("use std::nat;\n")
        result = runner.invoke(main, ["view", str(sig)])
        assert result.exit_code == 0
        assert result.output.splitlines() == [
            "use", "  path", "    name: 'std'", "    name: 'nat'",
        ]

    def test_view_bad_file(self, runner, tmp_path):
        sig = tmp_path / "bad.sig"
        sig.write_text("x: 5; y\n")
        result = runner.invoke(main, ["view", "--no-color", str(sig)])
        assert result.exit_code == 1
        assert "error[E110]" in result.output

    def test_lsp_help(self, runner):
        result = runner.invoke(main, ["lsp", "--help"])
        assert result.exit_code == 0


# --- Config tests ---


class TestConfig:
    def test_load_config(self, tmp_project):
        config = load_config(tmp_project / "mathsyntax.toml")
        assert config.package.name == "testproj"
        assert config.package.version == "1.0.0"
        assert config.check.sources == ["src/**/*.sig"]
        assert config.output.color is False
        assert config.root == tmp_project

    def test_load_config_defaults(self, tmp_path):
        toml = tmp_path / "mathsyntax.toml"
        toml.write_text("[package]\n")
        config = load_config(toml)
        assert config.package.name == "untitled"
        assert config.check.sources == ["src/**/*.sig"]
        assert config.output.color is True

    def test_source_files(self, tmp_project):
        (tmp_project / "src" / "a.sig").write_text("mod a;\n")
        (tmp_project / "extra.sig").write_text("mod extra;\n")
        config = load_config(tmp_project / "mathsyntax.toml")
        config.check.sources = ["src/**/*.sig", "*.sig", "src/main.sig"]
        assert config.source_files() == [
            tmp_project / "src" / "a.sig",
            tmp_project / "src" / "main.sig",
            tmp_project / "extra.sig",
        ]

    def test_source_files_feed_syntax(self, tmp_project):
        config = load_config(tmp_project / "mathsyntax.toml")
        syntax = Syntax.new(config.source_files())
        assert syntax.files == [tmp_project / "src" / "main.sig"]

    def test_find_config(self, tmp_project):
        sub = tmp_project / "src"
        found = find_config(sub)
        assert found == (tmp_project / "mathsyntax.toml").resolve()

    def test_find_config_not_found(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        with pytest.raises(FileNotFoundError, match="No mathsyntax.toml found"):
            find_config(empty)


# --- Error rendering tests ---


class TestDiagnostics:
    def test_render_error(self):
        span = Span("nat.sig", 3, 7, 3, 9)
        diag = Diagnostic(
            severity=Severity.ERROR,
            code="E101",
            message="expected token `;`",
            labels=[DiagnosticLabel(span=span, message="")],
            notes=["in rule #7"],
        )

        renderer = DiagnosticRenderer(color=False)
        output = renderer.render(diag)

        assert "error[E101]" in output
        assert "nat.sig:3:7" in output
        assert "note: in rule #7" in output

    def test_render_label_message(self, tmp_path):
        f = tmp_path / "main.sig"
        f.write_text("mod a;\nmod bb\n")
        diag = Diagnostic(
            severity=Severity.WARNING,
            code="W001",
            message="suspicious module",
            labels=[DiagnosticLabel(span=Span(str(f), 2, 5, 2, 6), message="here")],
        )
        output = DiagnosticRenderer(color=False).render(diag)
        assert "warning[W001]" in output
        assert "mod bb" in output
        assert "    ^^" in output
        assert "here" in output

    def test_render_with_color(self):
        diag = Diagnostic(Severity.ERROR, "E001", "could not read `x.sig`")
        output = DiagnosticRenderer(color=True).render(diag)
        assert "\033[1;31m" in output


# --- Source tests ---


class TestSource:
    def test_line_col(self):
        text = "ab\ncd"
        assert line_col(text, 0) == (1, 1)
        assert line_col(text, 2) == (1, 3)
        assert line_col(text, 3) == (2, 1)
        assert line_col(text, 5) == (2, 3)

    def test_range_to_span(self):
        span = range_to_span("f.sig", "ab\ncde\n", Range(3, 3))
        assert (span.start_line, span.start_col, span.end_line, span.end_col) == (2, 1, 2, 3)

    def test_empty_range_to_span(self):
        span = range_to_span("f.sig", "ab\n", Range(1, 0))
        assert (span.start_col, span.end_col) == (2, 2)

    def test_span_str(self):
        assert str(Span("file.sig", 10, 5, 10, 20)) == "file.sig:10:5"

    def test_range_helpers(self):
        rng = Range(2, 3)
        assert rng.next_offset == 5
        assert rng.contains(4)
        assert not rng.contains(5)
        assert rng.union(Range(7, 1)) == Range(2, 6)
        assert str(rng) == "2..5"
