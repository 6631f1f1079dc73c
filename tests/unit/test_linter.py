"""
Unit tests for the Ruff lint engine adapter.
"""

import json
import subprocess

import pytest

from lint_reviewer.review import linter as linter_module
from lint_reviewer.review.linter import LinterError, RuffLinter, flatten_settings
from lint_reviewer.review.ruleset import ResolvedConfig, apply_format_preferences, parse_format_preferences


class _FakeResult:
    def __init__(self, returncode=0, stdout="", stderr=""):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


def make_config(settings=None):
    return ResolvedConfig.build("pkg", "head", settings or {})


def ruff_item(code, row, message):
    return {"code": code, "message": message, "location": {"row": row, "column": 1}}


def test_flatten_settings():
    config = make_config({
        "line-length": 100,
        "lint": {
            "select": ["E", "F"],
            "flake8-quotes": {"inline-quotes": "single"},
            "per-file-ignores": {"tests/*.py": ["S101"]},
            "preview": True,
            "unused": None,
        },
    })

    assert flatten_settings(config.settings) == [
        ("line-length", "100"),
        ("lint.flake8-quotes.inline-quotes", '"single"'),
        ('lint.per-file-ignores."tests/*.py"', '["S101"]'),
        ("lint.preview", "true"),
        ("lint.select", '["E", "F"]'),
    ]


def test_build_command():
    ruff = RuffLinter(binary="ruff")

    cmd = ruff.build_command("pkg/app.py", make_config({"lint": {"select": ["F"]}}))

    assert cmd[:2] == ["ruff", "check"]
    assert "--isolated" in cmd
    assert cmd[cmd.index("--stdin-filename") + 1] == "pkg/app.py"
    assert cmd[cmd.index("--config") + 1] == 'lint.select = ["F"]'
    assert cmd[-1] == "-"


def test_lint_parses_json_output(monkeypatch):
    monkeypatch.setattr(linter_module.shutil, "which", lambda _: "/usr/bin/ruff")
    captured = {}

    def _run(cmd, **kwargs):
        captured["input"] = kwargs["input"]
        return _FakeResult(returncode=1, stdout=json.dumps([
            ruff_item("F401", 1, "`os` imported but unused"),
            ruff_item("E501", 3, "Line too long (120 > 100)"),
            ruff_item(None, 5, "SyntaxError: Expected an expression"),
        ]))

    monkeypatch.setattr(linter_module.subprocess, "run", _run)

    diagnostics = RuffLinter().lint("pkg/app.py", "import os\n", make_config())

    assert captured["input"] == "import os\n"
    assert [(d.line, d.rule_id, d.severity) for d in diagnostics] == [
        (1, "F401", "error"),
        (3, "E501", "warning"),
        (5, "syntax-error", "error"),
    ]
    assert diagnostics[1].message == "Line too long (120 > 100)"


def test_lint_clean_file(monkeypatch):
    monkeypatch.setattr(linter_module.shutil, "which", lambda _: "/usr/bin/ruff")
    monkeypatch.setattr(linter_module.subprocess, "run", lambda *_a, **_k: _FakeResult(returncode=0, stdout="[]"))

    assert RuffLinter().lint("a.py", "x = 1\n", make_config()) == []


def test_lint_tool_unavailable(monkeypatch):
    monkeypatch.setattr(linter_module.shutil, "which", lambda _: None)

    with pytest.raises(LinterError, match="not installed"):
        RuffLinter().lint("a.py", "", make_config())


def test_lint_timeout(monkeypatch):
    monkeypatch.setattr(linter_module.shutil, "which", lambda _: "/usr/bin/ruff")

    def _raise_timeout(*_args, **_kwargs):
        raise subprocess.TimeoutExpired(cmd="ruff", timeout=1)

    monkeypatch.setattr(linter_module.subprocess, "run", _raise_timeout)

    with pytest.raises(LinterError, match="timed out"):
        RuffLinter(timeout_sec=1).lint("a.py", "", make_config())


def test_lint_engine_failure(monkeypatch):
    monkeypatch.setattr(linter_module.shutil, "which", lambda _: "/usr/bin/ruff")
    monkeypatch.setattr(
        linter_module.subprocess, "run",
        lambda *_a, **_k: _FakeResult(returncode=2, stderr="error: unknown rule selector `XYZ`")
    )

    with pytest.raises(LinterError, match="unknown rule selector"):
        RuffLinter().lint("a.py", "", make_config({"lint": {"select": ["XYZ"]}}))


def test_lint_invalid_json(monkeypatch):
    monkeypatch.setattr(linter_module.shutil, "which", lambda _: "/usr/bin/ruff")
    monkeypatch.setattr(linter_module.subprocess, "run", lambda *_a, **_k: _FakeResult(returncode=1, stdout="{"))

    with pytest.raises(LinterError, match="invalid JSON"):
        RuffLinter().lint("a.py", "", make_config())


def test_validate_settings_accepts(monkeypatch):
    monkeypatch.setattr(linter_module.shutil, "which", lambda _: "/usr/bin/ruff")
    runs = []

    def _run(cmd, **kwargs):
        runs.append((cmd, kwargs))
        return _FakeResult(returncode=0)

    monkeypatch.setattr(linter_module.subprocess, "run", _run)

    assert RuffLinter().validate_settings({"lint": {"select": ["F"]}}) is None

    cmd, kwargs = runs[0]
    assert cmd[cmd.index("--config") + 1] == 'lint.select = ["F"]'
    assert "--stdin-filename" not in cmd
    assert cmd[-1] == "-"
    assert kwargs["input"] == ""


def test_validate_settings_reports_rejection(monkeypatch):
    monkeypatch.setattr(linter_module.shutil, "which", lambda _: "/usr/bin/ruff")
    monkeypatch.setattr(
        linter_module.subprocess, "run",
        lambda *_a, **_k: _FakeResult(returncode=2, stderr="error: invalid value 'unknown-key = 1'\n  for '--config'\n")
    )

    assert RuffLinter().validate_settings({"unknown-key": 1}) == "error: invalid value 'unknown-key = 1' for '--config'"


def test_validate_settings_unsupported_value_skips_engine(monkeypatch):
    def _run(*_args, **_kwargs):
        raise AssertionError("ruff should not run")

    monkeypatch.setattr(linter_module.subprocess, "run", _run)

    assert "Unsupported configuration value" in RuffLinter().validate_settings({"lint": {"select": [None]}})


def test_validate_settings_timeout(monkeypatch):
    monkeypatch.setattr(linter_module.shutil, "which", lambda _: "/usr/bin/ruff")

    def _raise_timeout(*_args, **_kwargs):
        raise subprocess.TimeoutExpired(cmd="ruff", timeout=1)

    monkeypatch.setattr(linter_module.subprocess, "run", _raise_timeout)

    with pytest.raises(LinterError, match="timed out"):
        RuffLinter(timeout_sec=1).validate_settings({"line-length": 100})


class TestInstalledRuff:
    """Runs the real Ruff executable."""

    def test_nested_and_extended_settings_reach_ruff(self, ruff_binary):
        config = make_config({
            "line-length": 40,
            "lint": {
                "extend-select": ["E501", "Q000"],
                "flake8-quotes": {"inline-quotes": "single"},
            },
        })
        code = 'import os\nx = "a very long string literal that goes past forty"\n'

        diagnostics = RuffLinter(binary=ruff_binary).lint("pkg/app.py", code, config)

        found = {(d.line, d.rule_id) for d in diagnostics}
        assert {(1, "F401"), (2, "E501"), (2, "Q000")} <= found

    def test_inline_quotes_setting_is_honoured(self, ruff_binary):
        config = make_config({
            "lint": {
                "extend-select": ["Q000"],
                "flake8-quotes": {"inline-quotes": "double"},
            },
        })

        diagnostics = RuffLinter(binary=ruff_binary).lint("app.py", 'x = "double"\n', config)

        assert "Q000" not in {d.rule_id for d in diagnostics}

    def test_line_length_setting_is_honoured(self, ruff_binary):
        code = 'x = "a very long string literal that goes past forty"\n'
        ruff = RuffLinter(binary=ruff_binary)

        short = ruff.lint("app.py", code, make_config({"line-length": 40, "lint": {"extend-select": ["E501"]}}))
        wide = ruff.lint("app.py", code, make_config({"line-length": 120, "lint": {"extend-select": ["E501"]}}))

        assert "E501" in {d.rule_id for d in short}
        assert "E501" not in {d.rule_id for d in wide}

    def test_indent_width_preference_reports_e111(self, ruff_binary):
        preferences = parse_format_preferences("f", '{"indent-width": 2}')
        config = make_config(apply_format_preferences({}, preferences))

        diagnostics = RuffLinter(binary=ruff_binary).lint("app.py", "if True:\n   x = 1\n", config)

        assert (2, "E111") in {(d.line, d.rule_id) for d in diagnostics}

    def test_validate_settings_accepts_valid_fragment(self, ruff_binary):
        settings = {"line-length": 100, "lint": {"select": ["E", "F"], "flake8-quotes": {"inline-quotes": "single"}}}

        assert RuffLinter(binary=ruff_binary).validate_settings(settings) is None

    @pytest.mark.parametrize("settings", [
        {"lint": {"select": "E"}},
        {"unknown-key": 1},
        {"lint": {"select": ["NOPE999"]}},
    ])
    def test_validate_settings_rejects_bad_fragment(self, ruff_binary, settings):
        message = RuffLinter(binary=ruff_binary).validate_settings(settings)

        assert message
