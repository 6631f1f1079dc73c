"""
Ruleset Resolver

Resolves the cascading lint configuration of a changed file. Fragments
are collected from the file's directory up to the repository root, the
nearest fragment winning field by field, and a fragment marked as root
ends the walk. The revision's base ruleset and formatting preferences
sit underneath every directory's result.

All fetches go through a request-scoped cache that keeps one in-flight
task per key, so files sharing an ancestor directory fetch it once.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Hashable, Iterator, List, Literal, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, ValidationError, field_validator

from ..github.client import NotFoundError


logger = logging.getLogger(__name__)

ROOT_DIRECTORY = "."
ROOT_MARKER = "root"

# rule lists that accumulate across levels instead of being replaced
ADDITIVE_KEYS = frozenset({'extend-select'})

# Returns Ruff's complaint about a settings mapping, or None when accepted
SettingsValidator = Callable[[Mapping[str, Any]], Optional[str]]


class ConfigFragmentError(ValueError):
    """A configuration file exists but cannot be used"""


class RulesetFragment(BaseModel):
    """Schema of a base or per-directory ruleset file"""
    model_config = ConfigDict(extra='allow')

    root: StrictBool = False
    lint: Dict[str, Any] = Field(default_factory=dict)


class FormatPreferences(BaseModel):
    """Schema of the formatting preferences file"""
    model_config = ConfigDict(extra='forbid')

    line_length: Optional[StrictInt] = Field(default=None, alias='line-length')
    indent_width: Optional[StrictInt] = Field(default=None, alias='indent-width')
    quote_style: Optional[Literal['single', 'double']] = Field(default=None, alias='quote-style')

    @field_validator('line_length', 'indent_width')
    @classmethod
    def validate_positive(cls, v):
        if v is not None and v <= 0:
            raise ValueError('must be positive')
        return v


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge override into base. Override wins for leaf values.

    Lists under ADDITIVE_KEYS are unioned, base entries first, so a
    nearer ``extend-select`` adds to the rules enabled further out.
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        elif key in ADDITIVE_KEYS and isinstance(current, list) and isinstance(value, list):
            merged[key] = current + [item for item in value if item not in current]
        else:
            merged[key] = value
    return merged


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    return value


def iter_ancestor_directories(directory: str) -> Iterator[str]:
    """
    Yield *directory* and each of its ancestors, nearest first.

    The last value is always the repository root ("."), which ends the
    iteration.
    """
    path = PurePosixPath(directory)
    yield str(path)
    for parent in path.parents:
        yield str(parent)


def config_path(directory: str, file_name: str) -> str:
    """Repository-relative path of *file_name* inside *directory*."""
    return str(PurePosixPath(directory) / file_name)


@dataclass(frozen=True)
class ConfigFragment:
    """A parsed configuration file"""
    path: str
    settings: Mapping[str, Any]
    is_root: bool = False


@dataclass(frozen=True)
class ResolvedConfig:
    """Immutable merged ruleset for one (directory, revision)"""
    directory: str
    revision: str
    settings: Mapping[str, Any]
    sources: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()

    @classmethod
    def build(
        cls,
        directory: str,
        revision: str,
        settings: Dict[str, Any],
        sources: Sequence[str] = (),
        warnings: Sequence[str] = ()
    ) -> "ResolvedConfig":
        return cls(
            directory=directory,
            revision=revision,
            settings=_freeze(settings),
            sources=tuple(sources),
            warnings=tuple(warnings),
        )

    def as_dict(self) -> Dict[str, Any]:
        """Mutable deep copy of the merged settings."""
        return _thaw(self.settings)

    def to_json(self) -> str:
        """Canonical serialization, identical for identical settings."""
        return json.dumps(self.as_dict(), sort_keys=True, separators=(',', ':'))


class ResolveOnceCache:
    """
    Keyed read-through cache holding one asyncio task per key.

    Concurrent callers asking for the same key await the same task, so
    the fetch runs once. Failures are cached too and re-raised to every
    caller.
    """

    def __init__(self, name: str):
        self.name = name
        self._tasks: Dict[Hashable, asyncio.Future] = {}
        self.misses = 0

    async def get_or_fetch(self, key: Hashable, fetch: Callable[[], Awaitable[Any]]) -> Any:
        task = self._tasks.get(key)
        if task is None:
            self.misses += 1
            logger.debug(f"{self.name} cache miss: {key}")
            task = asyncio.ensure_future(fetch())
            self._tasks[key] = task
        return await task

    def __contains__(self, key: Hashable) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)


@dataclass
class RulesetCache:
    """Caches for one review cycle. Create a new instance per cycle."""
    fragments: ResolveOnceCache = field(default_factory=lambda: ResolveOnceCache('fragment'))
    baselines: ResolveOnceCache = field(default_factory=lambda: ResolveOnceCache('baseline'))
    resolved: ResolveOnceCache = field(default_factory=lambda: ResolveOnceCache('resolved'))


def parse_fragment(path: str, content: str) -> ConfigFragment:
    """
    Parse and validate a ruleset file.

    Raises:
        ConfigFragmentError: For invalid JSON or schema violations
    """
    if not content.strip():
        return ConfigFragment(path=path, settings=_freeze({}))

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigFragmentError(f"{path}: invalid JSON ({e.msg} at line {e.lineno})")

    if not isinstance(data, dict):
        raise ConfigFragmentError(f"{path}: expected a JSON object, got {type(data).__name__}")

    try:
        fragment = RulesetFragment.model_validate(data)
    except ValidationError as e:
        error = e.errors()[0]
        location = '.'.join(str(part) for part in error['loc'])
        raise ConfigFragmentError(f"{path}: {location}: {error['msg']}")

    return ConfigFragment(path=path, settings=_freeze(data), is_root=fragment.root)


def parse_format_preferences(path: str, content: str) -> FormatPreferences:
    """
    Parse the formatting preferences file.

    Raises:
        ConfigFragmentError: For invalid JSON or unknown/invalid keys
    """
    try:
        data = json.loads(content) if content.strip() else {}
    except json.JSONDecodeError as e:
        raise ConfigFragmentError(f"{path}: invalid JSON ({e.msg} at line {e.lineno})")

    if not isinstance(data, dict):
        raise ConfigFragmentError(f"{path}: expected a JSON object, got {type(data).__name__}")

    try:
        return FormatPreferences.model_validate(data)
    except ValidationError as e:
        error = e.errors()[0]
        location = '.'.join(str(part) for part in error['loc'])
        raise ConfigFragmentError(f"{path}: {location}: {error['msg']}")


def apply_format_preferences(settings: Dict[str, Any], preferences: FormatPreferences) -> Dict[str, Any]:
    """
    Fold formatting preferences into a ruleset as additional rules.

    Line length enables E501, indent width enables E111 (a preview rule,
    so preview mode is switched on) and quote style enables Q000 with the
    matching flake8-quotes setting.
    """
    extra: Dict[str, Any] = {}
    lint: Dict[str, Any] = {}
    rules: List[str] = []

    if preferences.line_length is not None:
        extra['line-length'] = preferences.line_length
        rules.append('E501')
    if preferences.indent_width is not None:
        extra['indent-width'] = preferences.indent_width
        lint['preview'] = True
        rules.append('E111')
    if preferences.quote_style is not None:
        lint['flake8-quotes'] = {'inline-quotes': preferences.quote_style}
        rules.append('Q000')

    if rules:
        lint['extend-select'] = rules
        extra['lint'] = lint
    return deep_merge(settings, extra)


class ConfigResolver:
    """
    Produces one ResolvedConfig per (directory, revision).

    The resolver holds no state of its own beyond the cache it is given,
    so sharing a cache between resolvers shares their fetches.
    """

    def __init__(
        self,
        gateway,
        cache: RulesetCache,
        directory_config_file: str = ".lintreview.override.json",
        base_config_file: str = ".lintreview.json",
        format_preferences_file: str = ".lintreview.format.json",
        settings_validator: Optional[SettingsValidator] = None
    ):
        """
        Initialize resolver.

        Args:
            gateway: Object with an async ``read_file(path, revision)``
            cache: Request-scoped cache for this review cycle
            directory_config_file: Per-directory override file name
            base_config_file: Base ruleset file name at repository root
            format_preferences_file: Formatting preferences file name at repository root
            settings_validator: Checks a fragment against the lint engine; rejected
                fragments are skipped like malformed ones
        """
        self.gateway = gateway
        self.cache = cache
        self.directory_config_file = directory_config_file
        self.base_config_file = base_config_file
        self.format_preferences_file = format_preferences_file
        self.settings_validator = settings_validator

    async def resolve(self, file_path: str, revision: str) -> ResolvedConfig:
        """
        Resolve the ruleset that applies to *file_path* at *revision*.

        Args:
            file_path: Repository-relative path of the linted file
            revision: Revision SHA the configuration is read from

        Returns:
            Immutable merged configuration
        """
        directory = str(PurePosixPath(file_path).parent)
        return await self.cache.resolved.get_or_fetch(
            (directory, revision),
            lambda: self._resolve_directory(directory, revision)
        )

    async def _resolve_directory(self, directory: str, revision: str) -> ResolvedConfig:
        accumulated: Dict[str, Any] = {}
        sources: List[str] = []
        warnings: List[str] = []

        for ancestor in iter_ancestor_directories(directory):
            try:
                fragment = await self._get_fragment(ancestor, revision)
            except ConfigFragmentError as e:
                logger.warning(f"Skipping malformed configuration: {e}")
                warnings.append(str(e))
                continue

            if fragment is None:
                continue

            accumulated = deep_merge(_thaw(fragment.settings), accumulated)
            sources.append(fragment.path)

            if fragment.is_root:
                logger.debug(f"Root configuration at {fragment.path}, stopping walk")
                break

        baseline = await self._get_baseline(revision)
        settings = deep_merge(baseline.as_dict(), accumulated)
        settings.pop(ROOT_MARKER, None)

        logger.debug(f"Resolved configuration for {directory}@{revision[:7]} from {len(sources)} fragments")
        return ResolvedConfig.build(
            directory=directory,
            revision=revision,
            settings=settings,
            sources=sources + list(baseline.sources),
            warnings=warnings + list(baseline.warnings),
        )

    async def _get_fragment(self, directory: str, revision: str) -> Optional[ConfigFragment]:
        path = config_path(directory, self.directory_config_file)
        return await self.cache.fragments.get_or_fetch(
            (directory, revision),
            lambda: self._fetch_fragment(path, revision)
        )

    async def _fetch_fragment(self, path: str, revision: str) -> Optional[ConfigFragment]:
        content = await self._read_optional(path, revision)
        if content is None:
            return None
        fragment = parse_fragment(path, content)

        if self.settings_validator is not None:
            settings = _thaw(fragment.settings)
            settings.pop(ROOT_MARKER, None)
            if settings:
                complaint = await asyncio.to_thread(self.settings_validator, settings)
                if complaint:
                    raise ConfigFragmentError(f"{path}: rejected by ruff: {complaint}")
        return fragment

    async def _read_optional(self, path: str, revision: str) -> Optional[str]:
        try:
            return await self.gateway.read_file(path, revision)
        except NotFoundError:
            logger.debug(f"No configuration at {path}@{revision[:7]}")
            return None

    async def _get_baseline(self, revision: str) -> ResolvedConfig:
        return await self.cache.baselines.get_or_fetch(revision, lambda: self._load_baseline(revision))

    async def _load_baseline(self, revision: str) -> ResolvedConfig:
        """Base ruleset with the formatting preferences folded in."""
        settings: Dict[str, Any] = {}
        sources: List[str] = []
        warnings: List[str] = []

        try:
            base = await self._fetch_fragment(self.base_config_file, revision)
        except ConfigFragmentError as e:
            logger.warning(f"Ignoring malformed base configuration: {e}")
            warnings.append(str(e))
            base = None

        if base is not None:
            settings = _thaw(base.settings)
            settings.pop(ROOT_MARKER, None)
            sources.append(base.path)

        content = await self._read_optional(self.format_preferences_file, revision)
        if content is not None:
            try:
                preferences = parse_format_preferences(self.format_preferences_file, content)
            except ConfigFragmentError as e:
                logger.warning(f"Ignoring malformed formatting preferences: {e}")
                warnings.append(str(e))
            else:
                settings = apply_format_preferences(settings, preferences)
                sources.append(self.format_preferences_file)

        return ResolvedConfig.build(ROOT_DIRECTORY, revision, settings, sources, warnings)
