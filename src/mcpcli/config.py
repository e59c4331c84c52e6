# Configuration loading and persistence for mcp-cli
import json
import logging
import os
import platform
from pathlib import Path

from mcpcli.errors import ConfigFormatError, PersistenceError
from mcpcli.models import DEFAULT_CONFIG_VERSION, Config, ServerDefinition
from mcpcli.resolver import build_server_definition
from mcpcli.schemas import config_to_dict, is_foreign_config, parse_config_data, parse_foreign_config

logger = logging.getLogger(__name__)

# ABOUTME: Default config directory in user's home
CONFIG_DIR = Path.home() / ".mcp-cli"

# ABOUTME: Main config file location (JSON format)
CONFIG_FILE = CONFIG_DIR / "config.json"

# ABOUTME: Environment variable that overrides the default config path
CONFIG_PATH_ENV = "MCP_CLI_CONFIG"

# ABOUTME: Directory permissions: owner rwx, group/other rx, never world-writable
CONFIG_DIR_MODE = 0o755


def get_config_path(override: str | Path | None = None) -> Path:
    """Return the path to the mcp-cli config file.

    ABOUTME: Precedence: explicit override, $MCP_CLI_CONFIG, ~/.mcp-cli/config.json
    ABOUTME: File may not exist yet

    Args:
        override: Explicit path, e.g. from --config

    Returns:
        Path to config file
    """
    if override:
        return Path(override).expanduser()
    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path).expanduser()
    return CONFIG_FILE


def ensure_config_dir(path: Path | None = None) -> Path:
    """Create the directory holding the config file if it doesn't exist.

    ABOUTME: Creates ~/.mcp-cli/ (or the override's parent) if missing

    Returns:
        Path to config directory (guaranteed to exist)

    Raises:
        PersistenceError: If the directory cannot be created
    """
    config_dir = (path or get_config_path()).parent
    try:
        config_dir.mkdir(mode=CONFIG_DIR_MODE, parents=True, exist_ok=True)
    except OSError as e:
        raise PersistenceError(f"Failed to create config directory {config_dir}: {e}", e) from e
    return config_dir


def empty_config() -> Config:
    """Return a freshly-initialized config with no servers."""
    return Config(version=DEFAULT_CONFIG_VERSION, servers={})


def load_config(path: Path) -> Config:
    """Load and parse mcp-cli config from JSON file.

    ABOUTME: Missing file is not an error - returns an empty config
    ABOUTME: Tries native schema first, then the "mcpServers" schema

    Args:
        path: Path to config.json file

    Returns:
        Parsed Config object

    Raises:
        ConfigFormatError: If the file is unreadable, not JSON, or matches no schema
    """
    if not path.exists():
        logger.debug("Config file %s not found, starting empty", path)
        return empty_config()

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigFormatError(f"Invalid JSON in {path}: {e}", e) from e
    except OSError as e:
        raise ConfigFormatError(f"Cannot read config file {path}: {e}", e) from e

    try:
        config = parse_config_data(data)
    except (TypeError, ValueError) as e:
        raise ConfigFormatError(f"Invalid server entry in {path}: {e}", e) from e

    if config is None:
        raise ConfigFormatError(
            f"Unsupported config format in {path}: expected a 'servers' or 'mcpServers' object"
        )

    logger.debug("Loaded %d server(s) from %s", len(config.servers), path)
    return config


def save_config(path: Path, config: Config) -> None:
    """Save config to JSON file in native format.

    ABOUTME: Writes the whole document synchronously, no atomic rename
    ABOUTME: Creates parent directory if needed

    Raises:
        PersistenceError: If the file cannot be written
    """
    try:
        path.parent.mkdir(mode=CONFIG_DIR_MODE, parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(config_to_dict(config), f, indent=2)
            f.write("\n")
    except OSError as e:
        raise PersistenceError(f"Failed to write config file {path}: {e}", e) from e

    logger.debug("Saved %d server(s) to %s", len(config.servers), path)


def default_claude_desktop_path() -> Path:
    """Return the platform's Claude Desktop config location."""
    system = platform.system()
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / "Claude" / "claude_desktop_config.json"
    if system == "Windows":
        appdata = os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming"))
        return Path(appdata) / "Claude" / "claude_desktop_config.json"
    return Path.home() / ".config" / "Claude" / "claude_desktop_config.json"


def load_claude_desktop_config(path: Path) -> Config:
    """Load servers from a Claude Desktop style "mcpServers" file.

    ABOUTME: Unlike load_config, the file must exist and must be mcpServers format

    Raises:
        ConfigFormatError: If the file is missing, unreadable or not mcpServers format
    """
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigFormatError(f"Failed to parse Claude Desktop config {path}: {e}", e) from e
    except OSError as e:
        raise ConfigFormatError(f"Cannot read Claude Desktop config {path}: {e}", e) from e

    if not isinstance(data, dict) or not is_foreign_config(data):
        raise ConfigFormatError(f"No 'mcpServers' object in {path}")

    return parse_foreign_config(data)


class ConfigStore:
    """File-backed set of named server definitions.

    ABOUTME: Loaded once, held in memory, written back after every mutation
    ABOUTME: No file locking - concurrent writers can lose updates

    Usage:
        store = ConfigStore()
        store.add("time", definition)
        store.get("time")
        store.remove("time")
    """

    def __init__(self, path: str | Path | None = None) -> None:
        """Resolve the path, create its directory and load the file.

        Raises:
            PersistenceError: If the config directory cannot be created
            ConfigFormatError: If an existing file cannot be parsed
        """
        self._path = get_config_path(path)
        ensure_config_dir(self._path)
        self._config = load_config(self._path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def version(self) -> str:
        return self._config.version

    @property
    def servers(self) -> dict[str, ServerDefinition]:
        """Copy of all definitions keyed by name."""
        return dict(self._config.servers)

    def save(self) -> None:
        """Persist the in-memory config."""
        save_config(self._path, self._config)

    def add(self, name: str, definition: ServerDefinition) -> None:
        """Insert or replace a server and persist.

        ABOUTME: No existence check - last write wins
        ABOUTME: Stored under `name`, keeping only the fields its transport uses

        Raises:
            MissingParameterError: If the definition lacks a required field
            UnknownTransportError: If the definition's transport is unknown
            PersistenceError: If the write fails
        """
        definition = build_server_definition(
            name,
            definition.transport,
            command=definition.command,
            args=definition.args,
            env=definition.env,
            url=definition.url,
            headers=definition.headers,
            max_retries=definition.max_retries,
        )
        self._config.servers[name] = definition
        self.save()

    def remove(self, name: str) -> bool:
        """Remove a server by name.

        Returns:
            True if server was removed (and persisted), False if not found
        """
        if name not in self._config.servers:
            return False

        del self._config.servers[name]
        self.save()
        return True

    def get(self, name: str) -> ServerDefinition | None:
        return self._config.servers.get(name)

    def exists(self, name: str) -> bool:
        return name in self._config.servers

    def list_names(self) -> set[str]:
        return set(self._config.servers)
