# Environment variable utilities
import os
import re
import warnings
from collections.abc import Mapping

# ABOUTME: Pattern matches ${VAR_NAME} where VAR_NAME is uppercase with underscores
ENV_VAR_PATTERN = re.compile(r'\$\{([A-Z_][A-Z0-9_]*)\}')


def expand_env_vars(value: str) -> str:
    """Expand environment variables in ${VAR} format.

    ABOUTME: Supports ${VAR_NAME} syntax for environment variable expansion
    ABOUTME: Returns original value if variable not found (with warning)

    Args:
        value: String potentially containing ${VAR} references

    Returns:
        String with environment variables expanded

    Examples:
        >>> expand_env_vars("${HOME}/projects")
        '/Users/user/projects'
        >>> expand_env_vars("uvx ${UNSET_VAR}")
        'uvx ${UNSET_VAR}'  # with warning
    """
    def replace_var(match: re.Match[str]) -> str:
        var_name = match.group(1)
        if var_name in os.environ:
            return os.environ[var_name]
        else:
            warnings.warn(
                f"Environment variable '{var_name}' not found, keeping original",
                UserWarning,
                stacklevel=2
            )
            return match.group(0)

    return ENV_VAR_PATTERN.sub(replace_var, value)


def child_environment(overrides: Mapping[str, str] | None = None) -> dict[str, str]:
    """Build the environment for a child process.

    ABOUTME: Takes a fresh snapshot of os.environ, then applies overrides
    ABOUTME: Never mutates or shares the process-wide table

    Args:
        overrides: Entries that replace or extend the inherited environment

    Returns:
        New dict owned by the caller
    """
    env = dict(os.environ)
    if overrides:
        env.update({str(key): str(value) for key, value in overrides.items()})
    return env
