import json
import os
import sys
from dataclasses import asdict
from pathlib import Path

from config import (
    Config,
    apply_dict_to_dataclass,
    migrate_config,
)
from logging_utils import log_event


CONFIG_DIR_ENV = 'RUNWALK_CONFIG_DIR'


def get_config_dir() -> Path:
    """Get config directory - $RUNWALK_CONFIG_DIR if set, exe folder when packaged, home dir otherwise."""
    override = os.environ.get(CONFIG_DIR_ENV, '').strip()
    if override:
        config_dir = Path(override).expanduser()
        config_dir.mkdir(parents=True, exist_ok=True)
        return config_dir

    if getattr(sys, 'frozen', False):
        exe_dir = Path(sys.executable).parent
        probe = exe_dir / '.runwalk_write_test.tmp'
        try:
            with open(probe, 'w', encoding='utf-8') as f:
                f.write('ok')
            probe.unlink(missing_ok=True)
            return exe_dir
        except OSError:
            config_dir = Path.home() / '.runwalk'
            config_dir.mkdir(parents=True, exist_ok=True)
            return config_dir

    config_dir = Path.home() / '.runwalk'
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_file() -> Path:
    """Get config file path."""
    return get_config_dir() / 'config.json'


def save_config(config: Config) -> bool:
    """Save config to JSON file."""
    try:
        config_file = get_config_file()
        config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(config_file, 'w', encoding='utf-8') as f:
            json.dump(asdict(config), f, indent=2)
        log_event("INFO", "Config", "Saved", path=config_file)
        return True
    except Exception as e:
        log_event("ERROR", "Config", "Failed to save", error=e)
        return False


def load_config() -> Config:
    """Load config from JSON file, returns default if not found."""
    try:
        config_file = get_config_file()
        if config_file.exists():
            with open(config_file, 'r', encoding='utf-8') as f:
                data = json.load(f)

            config = Config()
            apply_dict_to_dataclass(config, data)
            loaded_version = data.get('version') if isinstance(data, dict) else None
            migrate_config(config, loaded_version, data)

            version = getattr(config, 'version', 'unknown')
            log_event("INFO", "Config", "Loaded", path=config_file, version=version)

            if loaded_version != version:
                if not save_config(config):
                    log_event("WARN", "Config", "Could not auto-save migrated config")
            return config

        log_event("INFO", "Config", "No saved config found, using defaults")
        return Config()
    except Exception as e:
        log_event("ERROR", "Config", "Failed to load, using defaults", error=e)
        return Config()
