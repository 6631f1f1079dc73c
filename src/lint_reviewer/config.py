"""
Configuration Management

시스템 설정 관리
"""

import os
import yaml
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Tuple
from pathlib import Path
import logging


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class GitHubConfig:
    """GitHub API 설정"""
    token: Optional[str] = None
    api_base_url: str = "https://api.github.com"
    timeout_seconds: int = 30
    webhook_secret: Optional[str] = None


@dataclass
class ReviewConfig:
    """리뷰 생성 설정"""
    bot_name: str = "lint-review-bot"
    linted_extensions: Tuple[str, ...] = (".py", ".pyi")
    base_config_file: str = ".lintreview.json"
    directory_config_file: str = ".lintreview.override.json"
    format_preferences_file: str = ".lintreview.format.json"
    review_event: str = "REQUEST_CHANGES"
    review_body: str = "Ruff found some issues."
    dismiss_stale_reviews: bool = False
    dry_run: bool = False
    max_concurrent_files: int = 8

    def __post_init__(self):
        # YAML and env values arrive as lists or comma separated strings
        if isinstance(self.linted_extensions, str):
            self.linted_extensions = tuple(
                ext.strip() for ext in self.linted_extensions.split(",") if ext.strip()
            )
        else:
            self.linted_extensions = tuple(self.linted_extensions)


@dataclass
class LintConfig:
    """Ruff 실행 설정"""
    ruff_binary: str = "ruff"
    timeout_seconds: int = 20


@dataclass
class ServerConfig:
    """웹훅 서버 설정"""
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class LoggingConfig:
    """로깅 설정"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5


@dataclass
class AppConfig:
    """전체 애플리케이션 설정"""
    github: GitHubConfig = field(default_factory=GitHubConfig)
    review: ReviewConfig = field(default_factory=ReviewConfig)
    lint: LintConfig = field(default_factory=LintConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    debug: bool = False

    @classmethod
    def from_env(cls) -> "AppConfig":
        """환경 변수에서 설정 로드"""
        return cls(
            github=GitHubConfig(
                token=os.getenv("GITHUB_TOKEN"),
                api_base_url=os.getenv("GITHUB_API_URL", "https://api.github.com"),
                timeout_seconds=int(os.getenv("GITHUB_TIMEOUT", "30")),
                webhook_secret=os.getenv("GITHUB_WEBHOOK_SECRET"),
            ),
            review=ReviewConfig(
                bot_name=os.getenv("LINT_REVIEW_BOT_NAME", "lint-review-bot"),
                linted_extensions=os.getenv("LINT_REVIEW_EXTENSIONS", ".py,.pyi"),
                base_config_file=os.getenv("LINT_REVIEW_BASE_CONFIG", ".lintreview.json"),
                directory_config_file=os.getenv("LINT_REVIEW_DIRECTORY_CONFIG", ".lintreview.override.json"),
                format_preferences_file=os.getenv("LINT_REVIEW_FORMAT_CONFIG", ".lintreview.format.json"),
                review_event=os.getenv("LINT_REVIEW_EVENT", "REQUEST_CHANGES"),
                review_body=os.getenv("LINT_REVIEW_BODY", "Ruff found some issues."),
                dismiss_stale_reviews=_env_flag("LINT_REVIEW_DISMISS_STALE"),
                dry_run=_env_flag("LINT_REVIEW_DRY_RUN"),
                max_concurrent_files=int(os.getenv("LINT_REVIEW_MAX_CONCURRENCY", "8")),
            ),
            lint=LintConfig(
                ruff_binary=os.getenv("RUFF_BINARY", "ruff"),
                timeout_seconds=int(os.getenv("RUFF_TIMEOUT", "20")),
            ),
            server=ServerConfig(
                host=os.getenv("SERVER_HOST", "0.0.0.0"),
                port=int(os.getenv("SERVER_PORT", "8000")),
            ),
            logging=LoggingConfig(
                level=os.getenv("LOG_LEVEL", "INFO"),
                format=os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
                file_path=os.getenv("LOG_FILE"),
                max_file_size=int(os.getenv("LOG_MAX_SIZE", str(10 * 1024 * 1024))),
                backup_count=int(os.getenv("LOG_BACKUP_COUNT", "5")),
            ),
            debug=_env_flag("DEBUG"),
        )

    @classmethod
    def from_yaml(cls, config_path: str) -> "AppConfig":
        """YAML 파일에서 설정 로드"""
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        return cls(
            github=GitHubConfig(**config_data.get('github', {})),
            review=ReviewConfig(**config_data.get('review', {})),
            lint=LintConfig(**config_data.get('lint', {})),
            server=ServerConfig(**config_data.get('server', {})),
            logging=LoggingConfig(**config_data.get('logging', {})),
            debug=config_data.get('debug', False),
        )

    def validate(self) -> None:
        """설정 유효성 검사"""
        errors = []

        if not self.github.token:
            errors.append("GitHub token is required")

        if not self.review.bot_name:
            errors.append("Bot name must not be empty")

        if not self.review.linted_extensions:
            errors.append("At least one linted extension is required")

        valid_events = {'APPROVE', 'REQUEST_CHANGES', 'COMMENT'}
        if self.review.review_event not in valid_events:
            errors.append(f"Invalid review event: {self.review.review_event}")

        if self.review.max_concurrent_files <= 0:
            errors.append("max_concurrent_files must be positive")

        if self.lint.timeout_seconds <= 0:
            errors.append("Ruff timeout must be positive")

        valid_log_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if self.logging.level.upper() not in valid_log_levels:
            errors.append(f"Invalid log level: {self.logging.level}")

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

    def to_dict(self) -> Dict[str, Any]:
        """설정을 딕셔너리로 변환"""
        return {
            'github': {
                'api_base_url': self.github.api_base_url,
                'timeout_seconds': self.github.timeout_seconds,
                # 보안상 토큰과 웹훅 시크릿은 제외
            },
            'review': {
                'bot_name': self.review.bot_name,
                'linted_extensions': list(self.review.linted_extensions),
                'base_config_file': self.review.base_config_file,
                'directory_config_file': self.review.directory_config_file,
                'format_preferences_file': self.review.format_preferences_file,
                'review_event': self.review.review_event,
                'review_body': self.review.review_body,
                'dismiss_stale_reviews': self.review.dismiss_stale_reviews,
                'dry_run': self.review.dry_run,
                'max_concurrent_files': self.review.max_concurrent_files,
            },
            'lint': {
                'ruff_binary': self.lint.ruff_binary,
                'timeout_seconds': self.lint.timeout_seconds,
            },
            'server': {
                'host': self.server.host,
                'port': self.server.port,
            },
            'logging': {
                'level': self.logging.level,
                'format': self.logging.format,
                'file_path': self.logging.file_path,
                'max_file_size': self.logging.max_file_size,
                'backup_count': self.logging.backup_count,
            },
            'debug': self.debug,
        }


class ConfigManager:
    """설정 관리자"""

    def __init__(self, config: Optional[AppConfig] = None):
        self._config = config or AppConfig.from_env()
        self._config.validate()
        self._setup_logging()

    @property
    def config(self) -> AppConfig:
        """현재 설정 반환"""
        return self._config

    def _setup_logging(self) -> None:
        """로깅 설정"""
        logging.basicConfig(
            level=getattr(logging, self._config.logging.level.upper()),
            format=self._config.logging.format,
        )

        # 파일 로깅이 설정된 경우 로테이션 설정
        if self._config.logging.file_path:
            from logging.handlers import RotatingFileHandler

            handler = RotatingFileHandler(
                self._config.logging.file_path,
                maxBytes=self._config.logging.max_file_size,
                backupCount=self._config.logging.backup_count,
            )
            handler.setFormatter(logging.Formatter(self._config.logging.format))

            # 루트 로거에 핸들러 추가
            root_logger = logging.getLogger()
            root_logger.addHandler(handler)


# 전역 설정 관리자 인스턴스 (첫 사용 시 생성)
_config_manager: Optional[ConfigManager] = None


def get_config() -> AppConfig:
    """현재 설정 반환"""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager.config
