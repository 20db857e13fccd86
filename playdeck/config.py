"""Application configuration utilities for playdeck."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any

from playdeck.logging import get_logger

logger = get_logger(__name__)

_RUNTIME_ENV_CACHE: dict[str, str] | None = None

DEFAULT_CONFIG_FILE_PATH = Path("~/.config/playdeck/config.yml")
DEFAULT_STATE_DIR = Path("~/.local/state/playdeck")

DEFAULT_SPOTIFY_REDIRECT_URI = "http://127.0.0.1:8888/callback"
DEFAULT_SPOTIFY_SCOPE = " ".join(
    (
        "playlist-read-collaborative",
        "playlist-read-private",
        "user-follow-read",
        "user-follow-modify",
        "user-library-modify",
        "user-library-read",
        "user-modify-playback-state",
        "user-read-currently-playing",
        "user-read-playback-state",
        "user-read-playback-position",
        "user-read-private",
        "user-read-recently-played",
    )
)

DEFAULT_SEEK_MILLISECONDS = 5_000
DEFAULT_VOLUME_INCREMENT = 10
DEFAULT_TICK_RATE_MS = 250
DEFAULT_PLAYBACK_POLL_INTERVAL_MS = 5_000
DEFAULT_SEEK_SETTLE_MS = 1_000
DEFAULT_LARGE_SEARCH_LIMIT = 20
DEFAULT_SMALL_SEARCH_LIMIT = 4
DEFAULT_LIBRARY_PAGE_LIMIT = 50
DEFAULT_LIKED_ICON = "♥"
DEFAULT_SHUFFLE_ICON = "🔀"
DEFAULT_REPEAT_TRACK_ICON = "🔂"
DEFAULT_REPEAT_CONTEXT_ICON = "🔁"
DEFAULT_PLAYING_ICON = "▶"
DEFAULT_PAUSED_ICON = "⏸"

DEFAULT_EXTERNAL_TIMEOUT_MS = 10_000
DEFAULT_EXTERNAL_RETRY_MAX = 3
DEFAULT_EXTERNAL_BACKOFF_BASE_MS = 500
DEFAULT_EXTERNAL_RATE_LIMIT_MS = 200

DEFAULT_LOG_LEVEL = "INFO"

DEFAULT_KEY_BINDINGS: dict[str, str] = {
    "back": "q",
    "next_page": "ctrl-d",
    "previous_page": "ctrl-u",
    "manage_devices": "d",
    "decrease_volume": "-",
    "increase_volume": "+",
    "toggle_playback": "space",
    "seek_backwards": "<",
    "seek_forwards": ">",
    "next_track": "n",
    "previous_track": "p",
    "shuffle": "ctrl-s",
    "repeat": "ctrl-r",
    "search": "/",
    "submit": "enter",
    "like": "s",
    "help": "?",
}


@dataclass(slots=True, frozen=True)
class ConfigTemplateEntry:
    name: str
    default: Any
    comment: str


@dataclass(slots=True, frozen=True)
class ConfigTemplateSection:
    name: str
    comment: str
    entries: tuple[ConfigTemplateEntry, ...]


_CONFIG_TEMPLATE_SECTIONS: tuple[ConfigTemplateSection, ...] = (
    ConfigTemplateSection(
        name="spotify",
        comment="Spotify application credentials",
        entries=(
            ConfigTemplateEntry("SPOTIFY_CLIENT_ID", None, "Client id of your Spotify app"),
            ConfigTemplateEntry("SPOTIFY_CLIENT_SECRET", None, ""),
            ConfigTemplateEntry(
                "SPOTIFY_REDIRECT_URI",
                DEFAULT_SPOTIFY_REDIRECT_URI,
                "Must match the redirect URI registered for the app",
            ),
        ),
    ),
    ConfigTemplateSection(
        name="behavior",
        comment="Playback and polling behaviour",
        entries=(
            ConfigTemplateEntry("SEEK_MILLISECONDS", DEFAULT_SEEK_MILLISECONDS, ""),
            ConfigTemplateEntry("VOLUME_INCREMENT", DEFAULT_VOLUME_INCREMENT, "Percent, 0-100"),
            ConfigTemplateEntry("TICK_RATE_MS", DEFAULT_TICK_RATE_MS, "Input/render cadence"),
            ConfigTemplateEntry(
                "PLAYBACK_POLL_INTERVAL_MS",
                DEFAULT_PLAYBACK_POLL_INTERVAL_MS,
                "Minimum spacing between playback refreshes",
            ),
        ),
    ),
    ConfigTemplateSection(
        name="keybindings",
        comment="Key overrides, e.g. KEY_BACK: q",
        entries=(ConfigTemplateEntry("KEY_BACK", DEFAULT_KEY_BINDINGS["back"], ""),),
    ),
)


def _load_env_file(path: Path) -> dict[str, str]:
    try:
        contents = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    env_values: dict[str, str] = {}
    for line in contents.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        key, sep, value = stripped.partition("=")
        if not sep:
            continue
        env_values[key.strip()] = value.strip().strip('"').strip("'")
    return env_values


def _resolve_config_file_path(env: Mapping[str, Any]) -> Path | None:
    raw_path = env.get("PLAYDECK_CONFIG_FILE")
    if raw_path:
        return Path(str(raw_path)).expanduser()
    if env.get("PYTEST_CURRENT_TEST"):
        return None
    return DEFAULT_CONFIG_FILE_PATH.expanduser()


def _render_yaml_scalar(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return str(value)
    text = str(value)
    if _needs_yaml_quotes(text):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


def _needs_yaml_quotes(text: str) -> bool:
    if not text:
        return True
    if text.lower() in {"true", "false", "null", "~"}:
        return True
    if text[0] in {"-", "#", "[", "{", "!"}:
        return True
    if text[0].isdigit() and not text.isdigit():
        return True
    for char in text:
        if char.isspace() or char in {":", "#", ",", "[", "]", "{", "}", '"', "'"}:
            return True
    return False


def _render_config_template() -> str:
    lines = [
        "# playdeck configuration",
        "#",
        "# Environment variables take precedence over values defined here.",
        "",
    ]
    for section in _CONFIG_TEMPLATE_SECTIONS:
        lines.append(f"# {section.comment}")
        lines.append(f"{section.name}:")
        for entry in section.entries:
            if entry.comment:
                lines.append(f"  # {entry.comment}")
            lines.append(f"  {entry.name}: {_render_yaml_scalar(entry.default)}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def _ensure_config_file(path: Path) -> None:
    if path.exists():
        return
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(_render_config_template(), encoding="utf-8")
        logger.info("Created default configuration file", extra={"path": str(path)})
    except OSError as exc:
        logger.warning(
            "Unable to create configuration file", extra={"path": str(path), "error": str(exc)}
        )


def _parse_yaml_scalar(text: str) -> Any:
    if not text:
        return None
    lowered = text.lower()
    if lowered in {"null", "~"}:
        return None
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if text.startswith('"') and text.endswith('"') and len(text) >= 2:
        inner = text[1:-1]
        return inner.replace('\\"', '"').replace("\\\\", "\\")
    if text.startswith("'") and text.endswith("'") and len(text) >= 2:
        return text[1:-1]
    try:
        if "." in text or "e" in lowered:
            return float(text)
        return int(text)
    except ValueError:
        return text


def _parse_yaml_like(contents: str) -> dict[str, dict[str, Any]]:
    parsed: dict[str, dict[str, Any]] = {}
    current_section: dict[str, Any] | None = None
    for raw_line in contents.splitlines():
        stripped = raw_line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if not raw_line.startswith(" "):
            if stripped.endswith(":"):
                section_name = stripped[:-1].strip()
                current_section = {} if section_name else None
                if section_name:
                    parsed[section_name] = current_section
            else:
                current_section = None
            continue
        if current_section is None or ":" not in stripped:
            continue
        key_part, value_part = stripped.split(":", 1)
        current_section[key_part.strip()] = _parse_yaml_scalar(value_part.strip())
    return parsed


def _flatten_sections(parsed: Mapping[str, Mapping[str, Any]]) -> dict[str, str]:
    env_values: dict[str, str] = {}
    for section in parsed.values():
        for key, value in section.items():
            if value is None:
                continue
            if isinstance(value, bool):
                env_values[key] = "true" if value else "false"
                continue
            env_values[key] = str(value)
    return env_values


def _load_yaml_config(path: Path) -> dict[str, str]:
    try:
        contents = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    return _flatten_sections(_parse_yaml_like(contents))


def load_runtime_env(
    *,
    env_file: str | os.PathLike[str] | None = None,
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Load runtime values: config file, then .env, then the explicit environment."""

    env: dict[str, str] = {}
    source = dict(base_env if base_env is not None else os.environ)

    config_path = _resolve_config_file_path(source)
    if config_path is not None:
        _ensure_config_file(config_path)
        env.update(_load_yaml_config(config_path))

    path = Path(env_file) if env_file is not None else Path(".env")
    if path.exists() and path.is_file():
        env.update(_load_env_file(path))

    env.update({key: str(value) for key, value in source.items() if value is not None})
    return env


def get_runtime_env() -> Mapping[str, str]:
    """Return the cached runtime environment mapping."""

    global _RUNTIME_ENV_CACHE
    if _RUNTIME_ENV_CACHE is None:
        _RUNTIME_ENV_CACHE = load_runtime_env()
    return _RUNTIME_ENV_CACHE


def override_runtime_env(runtime_env: Mapping[str, str] | None) -> None:
    """Override the cached runtime environment (primarily for testing)."""

    global _RUNTIME_ENV_CACHE
    if runtime_env is None:
        _RUNTIME_ENV_CACHE = None
    else:
        _RUNTIME_ENV_CACHE = dict(runtime_env)


def _env_value(env: Mapping[str, Any], key: str) -> str | None:
    value = env.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _coerce_int(value: Any, *, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _bounded_int(
    value: Any,
    *,
    default: int,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    resolved = _coerce_int(value, default=default)
    if minimum is not None:
        resolved = max(minimum, resolved)
    if maximum is not None:
        resolved = min(maximum, resolved)
    return resolved


@dataclass(slots=True, frozen=True)
class SpotifyConfig:
    client_id: str | None
    client_secret: str | None
    redirect_uri: str
    scope: str
    token_cache_path: str

    @property
    def is_complete(self) -> bool:
        return bool(self.client_id and self.client_secret and self.redirect_uri)

    @classmethod
    def from_env(cls, env: Mapping[str, Any]) -> SpotifyConfig:
        state_dir = Path(_env_value(env, "PLAYDECK_STATE_DIR") or DEFAULT_STATE_DIR)
        cache_path = _env_value(env, "SPOTIFY_TOKEN_CACHE") or str(state_dir / ".spotify_token")
        return cls(
            client_id=_env_value(env, "SPOTIFY_CLIENT_ID"),
            client_secret=_env_value(env, "SPOTIFY_CLIENT_SECRET"),
            redirect_uri=_env_value(env, "SPOTIFY_REDIRECT_URI") or DEFAULT_SPOTIFY_REDIRECT_URI,
            scope=_env_value(env, "SPOTIFY_SCOPE") or DEFAULT_SPOTIFY_SCOPE,
            token_cache_path=str(Path(cache_path).expanduser()),
        )


@dataclass(slots=True, frozen=True)
class BehaviorConfig:
    seek_milliseconds: int
    volume_increment: int
    tick_rate_ms: int
    playback_poll_interval_ms: int
    seek_settle_ms: int
    large_search_limit: int
    small_search_limit: int
    library_page_limit: int
    liked_icon: str = DEFAULT_LIKED_ICON
    shuffle_icon: str = DEFAULT_SHUFFLE_ICON
    repeat_track_icon: str = DEFAULT_REPEAT_TRACK_ICON
    repeat_context_icon: str = DEFAULT_REPEAT_CONTEXT_ICON
    playing_icon: str = DEFAULT_PLAYING_ICON
    paused_icon: str = DEFAULT_PAUSED_ICON

    @classmethod
    def from_env(cls, env: Mapping[str, Any]) -> BehaviorConfig:
        return cls(
            seek_milliseconds=_bounded_int(
                env.get("SEEK_MILLISECONDS"),
                default=DEFAULT_SEEK_MILLISECONDS,
                minimum=0,
            ),
            volume_increment=_bounded_int(
                env.get("VOLUME_INCREMENT"),
                default=DEFAULT_VOLUME_INCREMENT,
                minimum=0,
                maximum=100,
            ),
            tick_rate_ms=_bounded_int(
                env.get("TICK_RATE_MS"),
                default=DEFAULT_TICK_RATE_MS,
                minimum=1,
                maximum=1_000,
            ),
            playback_poll_interval_ms=_bounded_int(
                env.get("PLAYBACK_POLL_INTERVAL_MS"),
                default=DEFAULT_PLAYBACK_POLL_INTERVAL_MS,
                minimum=0,
            ),
            seek_settle_ms=_bounded_int(
                env.get("SEEK_SETTLE_MS"),
                default=DEFAULT_SEEK_SETTLE_MS,
                minimum=0,
            ),
            large_search_limit=_bounded_int(
                env.get("LARGE_SEARCH_LIMIT"),
                default=DEFAULT_LARGE_SEARCH_LIMIT,
                minimum=1,
                maximum=50,
            ),
            small_search_limit=_bounded_int(
                env.get("SMALL_SEARCH_LIMIT"),
                default=DEFAULT_SMALL_SEARCH_LIMIT,
                minimum=1,
                maximum=50,
            ),
            library_page_limit=_bounded_int(
                env.get("LIBRARY_PAGE_LIMIT"),
                default=DEFAULT_LIBRARY_PAGE_LIMIT,
                minimum=1,
                maximum=50,
            ),
            liked_icon=_env_value(env, "LIKED_ICON") or DEFAULT_LIKED_ICON,
            shuffle_icon=_env_value(env, "SHUFFLE_ICON") or DEFAULT_SHUFFLE_ICON,
            repeat_track_icon=_env_value(env, "REPEAT_TRACK_ICON") or DEFAULT_REPEAT_TRACK_ICON,
            repeat_context_icon=(
                _env_value(env, "REPEAT_CONTEXT_ICON") or DEFAULT_REPEAT_CONTEXT_ICON
            ),
            playing_icon=_env_value(env, "PLAYING_ICON") or DEFAULT_PLAYING_ICON,
            paused_icon=_env_value(env, "PAUSED_ICON") or DEFAULT_PAUSED_ICON,
        )


@dataclass(slots=True, frozen=True)
class ExternalCallPolicy:
    timeout_ms: int
    retry_max: int
    backoff_base_ms: int
    rate_limit_ms: int

    @classmethod
    def from_env(cls, env: Mapping[str, Any]) -> ExternalCallPolicy:
        return cls(
            timeout_ms=_bounded_int(
                env.get("EXTERNAL_TIMEOUT_MS"),
                default=DEFAULT_EXTERNAL_TIMEOUT_MS,
                minimum=100,
            ),
            retry_max=_bounded_int(
                env.get("EXTERNAL_RETRY_MAX"),
                default=DEFAULT_EXTERNAL_RETRY_MAX,
                minimum=1,
            ),
            backoff_base_ms=_bounded_int(
                env.get("EXTERNAL_BACKOFF_BASE_MS"),
                default=DEFAULT_EXTERNAL_BACKOFF_BASE_MS,
                minimum=1,
            ),
            rate_limit_ms=_bounded_int(
                env.get("EXTERNAL_RATE_LIMIT_MS"),
                default=DEFAULT_EXTERNAL_RATE_LIMIT_MS,
                minimum=0,
            ),
        )


@dataclass(slots=True, frozen=True)
class KeyBindings:
    bindings: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_KEY_BINDINGS))

    def key_for(self, action: str) -> str | None:
        return self.bindings.get(action)

    def action_for(self, key: str) -> str | None:
        for action, bound in self.bindings.items():
            if bound == key:
                return action
        return None

    @classmethod
    def from_env(cls, env: Mapping[str, Any]) -> KeyBindings:
        bindings = dict(DEFAULT_KEY_BINDINGS)
        for action in DEFAULT_KEY_BINDINGS:
            override = _env_value(env, f"KEY_{action.upper()}")
            if override is None:
                continue
            # Named keys are case-insensitive, single characters are not.
            bindings[action] = override.lower() if len(override) > 1 else override
        return cls(bindings=bindings)


@dataclass(slots=True, frozen=True)
class LoggingConfig:
    level: str
    log_file: str | None

    @classmethod
    def from_env(cls, env: Mapping[str, Any]) -> LoggingConfig:
        state_dir = Path(_env_value(env, "PLAYDECK_STATE_DIR") or DEFAULT_STATE_DIR)
        raw_file = env.get("LOG_FILE")
        if raw_file is None:
            log_file: str | None = str((state_dir / "playdeck.log").expanduser())
        else:
            log_file = str(raw_file).strip() or None
        level = (_env_value(env, "LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
        return cls(level=level, log_file=log_file)


@dataclass(slots=True, frozen=True)
class AppConfig:
    spotify: SpotifyConfig
    behavior: BehaviorConfig
    external: ExternalCallPolicy
    keys: KeyBindings
    logging: LoggingConfig
    device_id: str | None


def load_config(runtime_env: Mapping[str, Any] | None = None) -> AppConfig:
    """Build the application configuration from the runtime environment."""

    env = runtime_env if runtime_env is not None else get_runtime_env()
    return AppConfig(
        spotify=SpotifyConfig.from_env(env),
        behavior=BehaviorConfig.from_env(env),
        external=ExternalCallPolicy.from_env(env),
        keys=KeyBindings.from_env(env),
        logging=LoggingConfig.from_env(env),
        device_id=_env_value(env, "SPOTIFY_DEVICE_ID"),
    )


__all__ = [
    "AppConfig",
    "BehaviorConfig",
    "DEFAULT_KEY_BINDINGS",
    "ExternalCallPolicy",
    "KeyBindings",
    "LoggingConfig",
    "SpotifyConfig",
    "get_runtime_env",
    "load_config",
    "load_runtime_env",
    "override_runtime_env",
]
