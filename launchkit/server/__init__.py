"""
Integrated server process management.

- ServerLauncher: spawns the server jar and waits for readiness
- ManagedProcess: handle to a running server
- mint_root_token: signs the root-user credential from the server's secret key
"""

from launchkit.server.credentials import (
    ROOT_USER_UUID,
    mint_credential,
    mint_root_token,
    read_secret_key,
)
from launchkit.server.launcher import (
    ManagedProcess,
    OutputReader,
    ServerLauncher,
    build_command,
    build_environment,
    find_free_port,
    strip_ansi,
)

__all__ = [
    "ROOT_USER_UUID",
    "ManagedProcess",
    "OutputReader",
    "ServerLauncher",
    "build_command",
    "build_environment",
    "find_free_port",
    "mint_credential",
    "mint_root_token",
    "read_secret_key",
    "strip_ansi",
]
