# fzterm/utils/utils.py
"""
fzterm.utils.utils
==================

Core utility functions shared by the finder.

Key functionalities include:
- Automatic User Configuration: creates `config.toml` and `.env` templates in
  `~/.config/fzterm` on first run.
- Robust Configuration Loading: a hardcoded default configuration is
  recursively merged with the user's `config.toml`, so a missing or broken
  user file never prevents the finder from starting.
- Command Execution: runs user-bound shell commands with the current item
  substituted into the template, with inherited standard streams.
- Helper Utilities: deep-merging dictionaries and hex color conversion.
"""

import logging
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Any, Dict, Optional

import toml

logger = logging.getLogger("fzterm")

# --- Constants ---
WHITE_FG_IDX = 255
PLACEHOLDER = "{}"

CONFIG_DIR = Path.home() / ".config" / "fzterm"

ENV_TEMPLATE = """# Environment for fzterm
# Command used to produce candidates when standard input is a terminal.
FZTERM_DEFAULT_COMMAND=
# Options read before the command line arguments, e.g. "--reverse --cycle"
FZTERM_DEFAULT_OPTS=
# Set to 1 to trace every key event into keytrace.log
FZTERM_KEYTRACE=
"""

# Direct, hardcoded representation of the repository `config.toml`.
# It serves as the ultimate fallback, ensuring the finder can ALWAYS start.
DEFAULT_CONFIG: Dict[str, Any] = {
    "finder": {
        "prompt": "> ",
        "query": "",
        "multi": False,
        "sort": True,
        "toggle_sort": "",
        "reverse": False,
        "inline_info": False,
        "hscroll": True,
        "cycle": False,
        "mouse": True,
        "print_query": False,
        "expect": "",
        "theme": "dark",
        "black": False,
        "history": "",
        "history_size": 1000,
        "default_command": "find . -path '*/\\.*' -prune -o -type f -print -o -type l -print",
        "case": "smart",
    },
    "keybindings": {},
    "colors": {},
    "logging": {
        "file_level": "INFO",
        "console_level": "WARNING",
        "log_to_console": False,
        "separate_error_log": False,
    },
}


# --- Helper Functions ---

def get_project_root() -> Path:
    """Determines the project's root directory for finding template files."""
    return Path(__file__).resolve().parents[3]


def ensure_user_config_exists(config_dir: Optional[Path] = None) -> None:
    """Checks for user config files in `~/.config/fzterm` and creates them if missing."""
    config_dir = config_dir or CONFIG_DIR
    try:
        user_config_path = config_dir / "config.toml"
        user_env_path = config_dir / ".env"

        config_dir.mkdir(parents=True, exist_ok=True)

        if not user_config_path.exists():
            source_config_path = get_project_root() / "config.toml"
            if source_config_path.exists():
                shutil.copy(source_config_path, user_config_path)
                logger.info(f"Created user config template at: {user_config_path}")

        if not user_env_path.exists():
            user_env_path.write_text(ENV_TEMPLATE, encoding="utf-8")
            logger.info(f"Created user .env template at: {user_env_path}")

    except Exception as e:
        logger.critical(f"Could not create user configuration files: {e}", exc_info=True)


def load_config(config_dir: Optional[Path] = None) -> Dict[str, Any]:
    """
    Loads and merges configurations, ensuring the finder can always run.
    """
    config_dir = config_dir or CONFIG_DIR
    final_config = deep_merge({}, DEFAULT_CONFIG)
    logger.debug("Loaded embedded default configuration.")

    ensure_user_config_exists(config_dir)

    user_config_path = config_dir / "config.toml"
    if user_config_path.is_file():
        try:
            user_config = toml.load(user_config_path)
            final_config = deep_merge(final_config, user_config)
            logger.info(f"Successfully loaded and merged user config from {user_config_path}")
        except Exception as e:
            logger.error(f"Could not parse user config '{user_config_path}': {e}. Using defaults.")

    return final_config


def execute_command(template: str, current: str) -> int:
    """
    Runs a user-bound command through the system shell.

    Every placeholder in `template` is replaced with the shell-quoted text of
    the current item. Standard streams are inherited, so the caller must have
    released the terminal before calling. Returns the exit status, or -1 when
    the shell could not be started.
    """
    command = template.replace(PLACEHOLDER, shlex.quote(current))
    logger.info("Executing bound command: %s", command)
    try:
        completed = subprocess.run(["sh", "-c", command], check=False)
    except OSError as e:
        logger.error(f"Could not run command {command!r}: {e}", exc_info=True)
        return -1
    if completed.returncode != 0:
        logger.warning("Command %r exited with status %d", command, completed.returncode)
    return completed.returncode


def deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Recursively merges the `override` dictionary into the `base` dictionary.
    """
    result = base.copy()
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def hex_to_xterm(hex_color: str) -> int:
    """
    Converts a hexadecimal color string to the nearest xterm-256 color index.
    """
    hex_color = hex_color.lstrip("#")
    if len(hex_color) != 6:
        return WHITE_FG_IDX
    try:
        r, g, b = (int(hex_color[i:i+2], 16) for i in (0, 2, 4))
    except ValueError:
        return WHITE_FG_IDX

    if r == g == b:
        if r < 8: return 16
        if r > 248: return 231
        return round(((r - 8) / 247) * 24) + 232

    return int(
        16
        + (36 * round(r / 255 * 5))
        + (6 * round(g / 255 * 5))
        + round(b / 255 * 5)
    )
