# ABOUTME: Advisory checks for server definitions
# ABOUTME: Problems here are reported to the user, they never block a save
import os
import shutil
from dataclasses import dataclass
from urllib.parse import urlparse

from mcpcli.models import ServerDefinition
from mcpcli.utils.env import ENV_VAR_PATTERN


@dataclass(frozen=True)
class ValidationIssue:
    """Represents a validation error or warning.

    ABOUTME: Uses frozen dataclass for immutability
    ABOUTME: Severity level distinguishes between blocking errors and warnings
    """
    server_name: str
    message: str
    severity: str  # 'error' or 'warning'


def validate_command_exists(command: str) -> ValidationIssue | None:
    """Validate that a command exists on the system.

    ABOUTME: Uses shutil.which() for cross-platform command lookup
    ABOUTME: Returns None if command found, ValidationIssue otherwise

    Examples:
        >>> validate_command_exists("nonexistent_cmd")
        ValidationIssue(server_name='', message='Command not found: nonexistent_cmd', severity='error')
    """
    if shutil.which(command) is None:
        return ValidationIssue(
            server_name="",
            message=f"Command not found: {command}",
            severity="error"
        )
    return None


def validate_url(url: str) -> ValidationIssue | None:
    """Validate that a URL is properly formatted.

    ABOUTME: Requires HTTP or HTTPS scheme and a host
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        return ValidationIssue(
            server_name="",
            message=f"URL must use HTTP or HTTPS scheme: {url}",
            severity="error"
        )
    if not parsed.netloc:
        return ValidationIssue(
            server_name="",
            message=f"URL missing host/domain: {url}",
            severity="error"
        )
    return None


def _unset_references(server_name: str, value: str, location: str) -> list[ValidationIssue]:
    return [
        ValidationIssue(
            server_name=server_name,
            message=f"Environment variable '${match.group(1)}' not set (referenced in {location})",
            severity="warning"
        )
        for match in ENV_VAR_PATTERN.finditer(value)
        if match.group(1) not in os.environ
    ]


def validate_server(server: ServerDefinition) -> list[ValidationIssue]:
    """Validate a server definition.

    ABOUTME: For stdio: checks command existence and ${VAR} references
    ABOUTME: For sse/http: checks URL format and ${VAR} references
    ABOUTME: Returns list of all validation errors/warnings

    Args:
        server: ServerDefinition instance to validate

    Returns:
        List of ValidationIssue instances (empty if valid)
    """
    issues: list[ValidationIssue] = []

    if server.transport == "stdio" and server.command:
        # ${VAR} commands are only resolvable at connect time
        if not ENV_VAR_PATTERN.search(server.command):
            cmd_issue = validate_command_exists(server.command)
            if cmd_issue:
                issues.append(ValidationIssue(
                    server_name=server.name,
                    message=cmd_issue.message,
                    severity=cmd_issue.severity
                ))

        issues.extend(_unset_references(server.name, server.command, "command"))
        for arg in server.args:
            issues.extend(_unset_references(server.name, arg, "args"))
        for key, value in server.env.items():
            issues.extend(_unset_references(server.name, value, f"env.{key}"))

    elif server.transport in ("sse", "http") and server.url:
        if not ENV_VAR_PATTERN.search(server.url):
            url_issue = validate_url(server.url)
            if url_issue:
                issues.append(ValidationIssue(
                    server_name=server.name,
                    message=url_issue.message,
                    severity=url_issue.severity
                ))

        issues.extend(_unset_references(server.name, server.url, "url"))
        for key, value in server.headers.items():
            issues.extend(_unset_references(server.name, value, f"headers.{key}"))

    return issues
