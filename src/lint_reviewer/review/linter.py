"""Run Ruff on file content under a resolved ruleset and normalize its findings."""

import json
import re
import shutil
import logging
import subprocess
from typing import Any, List, Mapping, Optional, Tuple

from ..models.review import Diagnostic
from .ruleset import ResolvedConfig


logger = logging.getLogger(__name__)

_BARE_KEY = re.compile(r'^[A-Za-z0-9_-]+$')
SYNTAX_ERROR_RULE = "syntax-error"


class LinterError(Exception):
    """The lint engine could not produce results"""


def _toml_key(key: str) -> str:
    return key if _BARE_KEY.match(key) else json.dumps(key)


def _toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (int, float, str)):
        return json.dumps(value)
    if isinstance(value, (list, tuple)):
        return '[' + ', '.join(_toml_value(item) for item in value) + ']'
    if isinstance(value, Mapping):
        pairs = ', '.join(f'{_toml_key(k)} = {_toml_value(v)}' for k, v in value.items())
        return '{' + pairs + '}'
    raise LinterError(f"Unsupported configuration value: {value!r}")


def flatten_settings(settings: Mapping[str, Any], prefix: Tuple[str, ...] = ()) -> List[Tuple[str, str]]:
    """
    Flatten nested settings into dotted TOML ``key = value`` overrides.

    ``{"lint": {"select": ["E"]}}`` becomes ``[("lint.select", '["E"]')]``.
    Null values are dropped.
    """
    overrides: List[Tuple[str, str]] = []
    for key in sorted(settings):
        value = settings[key]
        path = prefix + (_toml_key(key),)
        if value is None:
            continue
        if isinstance(value, Mapping):
            overrides.extend(flatten_settings(value, path))
        else:
            overrides.append(('.'.join(path), _toml_value(value)))
    return overrides


def _severity_for(rule_id: str) -> str:
    if rule_id == SYNTAX_ERROR_RULE or rule_id.startswith(('F', 'E9')):
        return 'error'
    return 'warning'


class RuffLinter:
    """Lints file content with the Ruff CLI, reading from stdin."""

    def __init__(self, binary: str = "ruff", timeout_sec: int = 20):
        self.binary = binary
        self.timeout_sec = timeout_sec

    def build_command(self, file_path: str, config: ResolvedConfig) -> List[str]:
        cmd = [
            self.binary, "check",
            "--isolated",
            "--no-cache",
            "--output-format", "json",
            "--stdin-filename", file_path,
        ]
        for key, value in flatten_settings(config.settings):
            cmd.extend(["--config", f"{key} = {value}"])
        cmd.append("-")
        return cmd

    def lint(self, file_path: str, code_content: str, config: ResolvedConfig) -> List[Diagnostic]:
        """
        Run Ruff on stdin content and normalize JSON output.

        Args:
            file_path: Repository-relative path, used for per-file settings
            code_content: File content at the head revision
            config: Resolved ruleset for the file's directory

        Returns:
            Diagnostics in the order Ruff reports them

        Raises:
            LinterError: When Ruff is missing, times out or fails
        """
        if not shutil.which(self.binary):
            raise LinterError(f"{self.binary} is not installed in runtime environment.")

        cmd = self.build_command(file_path, config)
        try:
            result = subprocess.run(
                cmd,
                input=code_content,
                text=True,
                capture_output=True,
                timeout=self.timeout_sec,
                check=False,
            )
        except subprocess.TimeoutExpired:
            raise LinterError(f"ruff timed out after {self.timeout_sec}s on {file_path}")

        # 1 means violations were found
        if result.returncode not in (0, 1):
            raise LinterError(f"ruff execution failed on {file_path}: {(result.stderr or result.stdout)[:300]}")

        try:
            items = json.loads(result.stdout or "[]")
        except json.JSONDecodeError:
            raise LinterError(f"ruff produced invalid JSON output for {file_path}")

        diagnostics: List[Diagnostic] = []
        for item in items:
            rule_id = item.get("code") or SYNTAX_ERROR_RULE
            row = int((item.get("location") or {}).get("row", 1))
            diagnostics.append(
                Diagnostic(
                    line=max(row, 1),
                    rule_id=rule_id,
                    message=item.get("message", "Ruff finding"),
                    severity=_severity_for(rule_id),
                )
            )

        logger.debug(f"ruff reported {len(diagnostics)} diagnostics for {file_path}")
        return diagnostics

    def validate_settings(self, settings: Mapping[str, Any]) -> Optional[str]:
        """
        Check a settings mapping against Ruff without linting anything.

        Ruff is run on empty stdin with the settings as ``--config``
        overrides; it exits with status 2 when it rejects one of them.

        Returns:
            Ruff's error message, or None when the settings are accepted

        Raises:
            LinterError: When Ruff is missing or times out
        """
        try:
            overrides = flatten_settings(settings)
        except LinterError as e:
            return str(e)

        if not shutil.which(self.binary):
            raise LinterError(f"{self.binary} is not installed in runtime environment.")

        cmd = [self.binary, "check", "--isolated", "--no-cache"]
        for key, value in overrides:
            cmd.extend(["--config", f"{key} = {value}"])
        cmd.append("-")

        try:
            result = subprocess.run(
                cmd,
                input="",
                text=True,
                capture_output=True,
                timeout=self.timeout_sec,
                check=False,
            )
        except subprocess.TimeoutExpired:
            raise LinterError(f"ruff timed out after {self.timeout_sec}s validating settings")

        if result.returncode in (0, 1):
            return None
        message = ' '.join((result.stderr or result.stdout or f"exit status {result.returncode}").split())
        return message[:300]
