from __future__ import annotations

from pathlib import Path

from playdeck.config import (
    DEFAULT_KEY_BINDINGS,
    BehaviorConfig,
    ExternalCallPolicy,
    KeyBindings,
    LoggingConfig,
    SpotifyConfig,
    load_config,
    load_runtime_env,
    override_runtime_env,
)


def test_behavior_defaults() -> None:
    behavior = BehaviorConfig.from_env({})

    assert behavior.seek_milliseconds == 5_000
    assert behavior.volume_increment == 10
    assert behavior.tick_rate_ms == 250
    assert behavior.playback_poll_interval_ms == 5_000
    assert behavior.large_search_limit == 20
    assert behavior.small_search_limit == 4


def test_behavior_values_are_clamped_and_invalid_values_fall_back() -> None:
    behavior = BehaviorConfig.from_env(
        {
            "VOLUME_INCREMENT": "250",
            "TICK_RATE_MS": "5000",
            "LARGE_SEARCH_LIMIT": "0",
            "SEEK_MILLISECONDS": "soon",
        }
    )

    assert behavior.volume_increment == 100
    assert behavior.tick_rate_ms == 1_000
    assert behavior.large_search_limit == 1
    assert behavior.seek_milliseconds == 5_000


def test_external_policy_minimums() -> None:
    policy = ExternalCallPolicy.from_env({"EXTERNAL_RETRY_MAX": "0", "EXTERNAL_TIMEOUT_MS": "5"})

    assert policy.retry_max == 1
    assert policy.timeout_ms == 100


def test_key_binding_overrides() -> None:
    keys = KeyBindings.from_env({"KEY_BACK": "Esc", "KEY_LIKE": "L"})

    assert keys.key_for("back") == "esc"
    assert keys.key_for("like") == "L"
    assert keys.action_for("esc") == "back"
    assert keys.action_for("q") is None
    assert keys.key_for("search") == DEFAULT_KEY_BINDINGS["search"]


def test_spotify_config_completeness(tmp_path: Path) -> None:
    config = SpotifyConfig.from_env({"PLAYDECK_STATE_DIR": str(tmp_path)})

    assert config.is_complete is False
    assert config.token_cache_path == str(tmp_path / ".spotify_token")
    assert SpotifyConfig.from_env(
        {"SPOTIFY_CLIENT_ID": "id", "SPOTIFY_CLIENT_SECRET": "secret"}
    ).is_complete


def test_logging_config_allows_disabling_the_file(tmp_path: Path) -> None:
    assert LoggingConfig.from_env({"LOG_FILE": ""}).log_file is None
    default = LoggingConfig.from_env({"PLAYDECK_STATE_DIR": str(tmp_path), "LOG_LEVEL": "debug"})
    assert default.log_file == str(tmp_path / "playdeck.log")
    assert default.level == "DEBUG"


def test_config_file_is_created_and_environment_wins(tmp_path: Path) -> None:
    config_file = tmp_path / "config.yml"

    env = load_runtime_env(
        env_file=tmp_path / "missing.env",
        base_env={"PLAYDECK_CONFIG_FILE": str(config_file)},
    )

    assert config_file.exists()
    assert "behavior:" in config_file.read_text(encoding="utf-8")
    assert env["SEEK_MILLISECONDS"] == "5000"

    config_file.write_text(
        "behavior:\n"
        "  SEEK_MILLISECONDS: 2500\n"
        "  VOLUME_INCREMENT: 5\n"
        "keybindings:\n"
        '  KEY_BACK: "esc"\n',
        encoding="utf-8",
    )
    env_file = tmp_path / ".env"
    env_file.write_text("VOLUME_INCREMENT=7\n# comment\n", encoding="utf-8")

    env = load_runtime_env(
        env_file=env_file,
        base_env={"PLAYDECK_CONFIG_FILE": str(config_file), "SEEK_MILLISECONDS": "1000"},
    )
    config = load_config(env)

    assert config.behavior.seek_milliseconds == 1_000
    assert config.behavior.volume_increment == 7
    assert config.keys.key_for("back") == "esc"


def test_runtime_env_override_is_used_by_load_config() -> None:
    override_runtime_env({"SPOTIFY_DEVICE_ID": "kitchen"})

    assert load_config().device_id == "kitchen"
