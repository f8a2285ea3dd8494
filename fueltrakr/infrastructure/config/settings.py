"""Provides the function that loads configuration settings.

Supports loading from environment variables, a .env file and a YAML
configuration file (e.g., ~/.fueltrakr/config.yaml). Settings are resolved
once at process start into a frozen ``AppSettings`` value that is passed
into every service constructor.
"""

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import dotenv_values

from fueltrakr.domain.constants import (
    DEFAULT_API_TIMEOUT_MS,
    DEFAULT_FUNCTION_SLUG,
    DEFAULT_INDEX_PREFIX,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_BASE_DELAY_MS,
    DEFAULT_RETRY_MAX_DELAY_MS,
    ROLE_PORTER,
    ROLES,
)
from fueltrakr.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".fueltrakr"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
DEFAULT_SESSION_DIR = DEFAULT_CONFIG_DIR / "session"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "FUELTRAKR_"
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off", ""}


@dataclass(frozen=True)
class SupabaseSettings:
    """Connection parameters for the Supabase project hosting auth and the API."""
    project_id: Optional[str] = None
    anon_key: Optional[str] = None
    url: Optional[str] = None
    function_slug: str = DEFAULT_FUNCTION_SLUG
    functions_url: Optional[str] = None

    @property
    def project_url(self) -> Optional[str]:
        if self.url:
            return self.url.rstrip("/")
        if self.project_id:
            return f"https://{self.project_id}.supabase.co"
        return None

    @property
    def api_base_url(self) -> Optional[str]:
        """Base URL of the FuelTrakr edge function (``/signup``, ``/fuel-entries``, ...)."""
        if self.functions_url:
            return self.functions_url.rstrip("/")
        if self.project_url:
            return f"{self.project_url}/functions/v1/{self.function_slug}"
        return None


@dataclass(frozen=True)
class ElasticsearchSettings:
    """Connection parameters for the optional search index store."""
    node: str = "http://localhost:9200"
    cloud_id: Optional[str] = None
    api_key: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    index_prefix: str = DEFAULT_INDEX_PREFIX


@dataclass(frozen=True)
class RetrySettings:
    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_ms: int = DEFAULT_RETRY_BASE_DELAY_MS
    max_delay_ms: int = DEFAULT_RETRY_MAX_DELAY_MS


@dataclass(frozen=True)
class AppSettings:
    """Process-wide configuration, resolved once and never mutated."""
    mode: str = "production"
    demo_mode: bool = False
    skip_auth: bool = False
    auto_login: bool = False
    default_user_role: str = ROLE_PORTER
    debug_mode: bool = False
    console_logging: bool = False
    api_timeout_ms: int = DEFAULT_API_TIMEOUT_MS
    supabase: SupabaseSettings = field(default_factory=SupabaseSettings)
    elasticsearch: ElasticsearchSettings = field(default_factory=ElasticsearchSettings)
    retry: RetrySettings = field(default_factory=RetrySettings)
    log_level: str = "WARNING"
    log_file: Optional[str] = None
    log_format: str = DEFAULT_LOG_FORMAT
    session_dir: Path = DEFAULT_SESSION_DIR

    @property
    def is_development(self) -> bool:
        return self.mode == "development"

    def with_overrides(self, **changes: Any) -> "AppSettings":
        """Returns a copy with the given fields replaced (e.g. CLI flags)."""
        return dataclasses.replace(self, **changes)


class _ConfigSource:
    """Resolves a dotted key against the environment, then the YAML data."""

    def __init__(self, environ: Mapping[str, str], yaml_config: Dict[str, Any]):
        self._environ = environ
        self._yaml = yaml_config

    @staticmethod
    def env_name(key: str) -> str:
        return ENV_PREFIX + key.upper().replace(".", "_")

    def get(self, key: str, default: Any = None) -> Any:
        env_key = self.env_name(key)
        if env_key in self._environ:
            return self._environ[env_key]
        if key in self._yaml:
            return self._yaml[key]
        # Nested YAML sections, e.g. supabase: {project_id: ...}
        node: Any = self._yaml
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def get_str(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self.get(key)
        if value is None:
            return default
        value = str(value).strip()
        return value or default

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key)
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        raise ConfigurationError(f"{self.env_name(key)} must be true or false, got {value!r}")

    def get_int(self, key: str, default: int) -> int:
        value = self.get(key)
        if value is None or value == "":
            return default
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"{self.env_name(key)} must be an integer, got {value!r}") from e


def find_dotenv_path(start: Optional[Path] = None) -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = start or Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


def _read_yaml(config_file: Path) -> Dict[str, Any]:
    if not config_file.is_file():
        logger.debug(f"YAML config file not found: {config_file}")
        return {}
    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_file}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"YAML config file {config_file} did not contain a mapping.")
    logger.info(f"Loaded configuration from YAML: {config_file}")
    return data


def _require_http_url(source: _ConfigSource, key: str) -> Optional[str]:
    value = source.get_str(key)
    if value and not value.lower().startswith(("http://", "https://")):
        raise ConfigurationError(f"{source.env_name(key)} must start with http:// or https://, got {value!r}")
    return value


def default_log_level(debug_mode: bool, console_logging: bool) -> str:
    """Level used when ``logging.level`` is not configured."""
    if debug_mode:
        return "DEBUG"
    # Console logging surfaces request activity without full debug output
    return "INFO" if console_logging else "WARNING"


def load_settings(
    config_file: Optional[Path] = None,
    env_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> AppSettings:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables (``FUELTRAKR_*``)
    2. .env file
    3. YAML configuration file
    4. Default values

    The process environment is never modified.

    Args:
        config_file: Path to the YAML file. Defaults to ``$FUELTRAKR_CONFIG_FILE``
            or ``~/.fueltrakr/config.yaml``.
        env_file: Path to the .env file (searches upwards from cwd if None).
        environ: Environment mapping, ``os.environ`` if None.

    Returns:
        The resolved settings.

    Raises:
        ConfigurationError: If a value is malformed.
    """
    process_env = dict(os.environ if environ is None else environ)

    dotenv_path = env_file or find_dotenv_path()
    file_env: Dict[str, str] = {}
    if dotenv_path and dotenv_path.is_file():
        file_env = {k: v for k, v in dotenv_values(dotenv_path).items() if v is not None}
        logger.info(f"Loaded environment variables from: {dotenv_path}")
    merged_env = {**file_env, **process_env}

    yaml_path = config_file or Path(merged_env.get(ENV_PREFIX + "CONFIG_FILE", DEFAULT_CONFIG_FILE))
    source = _ConfigSource(merged_env, _read_yaml(Path(yaml_path)))

    mode = source.get_str("mode", "production")
    is_dev = mode == "development"

    default_role = source.get_str("default_user_role", ROLE_PORTER)
    if default_role not in ROLES:
        raise ConfigurationError(f"{source.env_name('default_user_role')} must be one of {', '.join(ROLES)}")

    retry = RetrySettings(
        max_retries=source.get_int("retry.max_retries", DEFAULT_MAX_RETRIES),
        base_delay_ms=source.get_int("retry.base_delay_ms", DEFAULT_RETRY_BASE_DELAY_MS),
        max_delay_ms=source.get_int("retry.max_delay_ms", DEFAULT_RETRY_MAX_DELAY_MS),
    )
    if retry.max_retries < 0 or retry.base_delay_ms <= 0 or retry.max_delay_ms < retry.base_delay_ms:
        raise ConfigurationError(
            "Retry settings require max_retries >= 0, base_delay_ms > 0 and max_delay_ms >= base_delay_ms"
        )

    debug_mode = source.get_bool("debug_mode", is_dev)
    console_logging = source.get_bool("console_logging", False)
    settings = AppSettings(
        mode=mode,
        # Demo mode and auth skipping stay off unless explicitly enabled
        demo_mode=source.get_bool("demo_mode", False),
        skip_auth=source.get_bool("skip_auth", False),
        auto_login=source.get_bool("auto_login", is_dev),
        default_user_role=default_role,
        debug_mode=debug_mode,
        console_logging=console_logging,
        api_timeout_ms=source.get_int("api_timeout", DEFAULT_API_TIMEOUT_MS),
        supabase=SupabaseSettings(
            project_id=source.get_str("supabase.project_id"),
            anon_key=source.get_str("supabase.anon_key"),
            url=_require_http_url(source, "supabase.url"),
            function_slug=source.get_str("supabase.function_slug", DEFAULT_FUNCTION_SLUG),
            functions_url=_require_http_url(source, "supabase.functions_url"),
        ),
        elasticsearch=ElasticsearchSettings(
            node=source.get_str("elasticsearch.node", "http://localhost:9200"),
            cloud_id=source.get_str("elasticsearch.cloud_id"),
            api_key=source.get_str("elasticsearch.api_key"),
            username=source.get_str("elasticsearch.username"),
            password=source.get_str("elasticsearch.password"),
            index_prefix=source.get_str("elasticsearch.index_prefix", DEFAULT_INDEX_PREFIX),
        ),
        retry=retry,
        log_level=source.get_str("logging.level", default_log_level(debug_mode, console_logging)).upper(),
        log_file=source.get_str("logging.file"),
        log_format=source.get_str("logging.format", DEFAULT_LOG_FORMAT),
        session_dir=Path(source.get_str("session.dir", str(DEFAULT_SESSION_DIR))).expanduser(),
    )
    logger.debug(
        f"Settings resolved: mode={settings.mode}, demo_mode={settings.demo_mode}, "
        f"debug_mode={settings.debug_mode}"
    )
    return settings
