# ABOUTME: Utility modules for mcp-cli
# ABOUTME: Exports env expansion and validation functions

from mcpcli.utils.env import child_environment, expand_env_vars
from mcpcli.utils.validation import (
    ValidationIssue,
    validate_command_exists,
    validate_server,
    validate_url,
)

__all__ = [
    "child_environment",
    "expand_env_vars",
    "ValidationIssue",
    "validate_command_exists",
    "validate_server",
    "validate_url",
]
