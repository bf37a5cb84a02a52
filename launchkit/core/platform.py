"""
Platform detection and capability matrix for launchkit.

This module maps the host operating system and CPU to the identifiers used
by the managed runtime vendor, and holds one capability row per operating
system describing how an installed runtime is laid out on that system.

Supported operating systems:
- linux, linux-musl, windows, mac, solaris, aix, android, ios

Supported architectures:
- x64, x32, aarch64, arm, ppc64, ppc64le, s390x, sparcv9, riscv64

Anything else resolves to 'unknown'. Adding a platform is a table edit.

Usage:
    from launchkit.core.platform import detect_platform

    info = detect_platform()
    print(info.platform_string())   # e.g. 'linux-x64'
    print(info.runtime_os)          # vendor id, e.g. 'alpine-linux' on musl
"""

import functools
import platform
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Tuple

UNKNOWN = "unknown"

_UNIX_LIBRARY_DIRS = ["lib", "lib/server"]

# Platform capability database, keyed by os id
PLATFORM_CAPABILITIES: Dict[str, Dict[str, Any]] = {
    "linux": {
        "runtime_os": "linux",
        "java_executable": "java",
        "java_home_subdir": "",
        "library_dirs": _UNIX_LIBRARY_DIRS,
        "library_path_vars": ["LD_LIBRARY_PATH"],
    },
    "linux-musl": {
        "runtime_os": "alpine-linux",
        "java_executable": "java",
        "java_home_subdir": "",
        "library_dirs": _UNIX_LIBRARY_DIRS,
        "library_path_vars": ["LD_LIBRARY_PATH"],
    },
    "windows": {
        "runtime_os": "windows",
        "java_executable": "javaw.exe",
        "java_home_subdir": "",
        "library_dirs": ["bin", "bin/server"],
        "library_path_vars": ["PATH"],
    },
    "mac": {
        "runtime_os": "mac",
        "java_executable": "java",
        "java_home_subdir": "Contents/Home",
        "library_dirs": _UNIX_LIBRARY_DIRS,
        "library_path_vars": ["DYLD_LIBRARY_PATH"],
    },
    "solaris": {
        "runtime_os": "solaris",
        "java_executable": "java",
        "java_home_subdir": "",
        "library_dirs": _UNIX_LIBRARY_DIRS,
        "library_path_vars": ["LD_LIBRARY_PATH"],
    },
    "aix": {
        "runtime_os": "aix",
        "java_executable": "java",
        "java_home_subdir": "",
        "library_dirs": _UNIX_LIBRARY_DIRS,
        "library_path_vars": ["LIBPATH"],
    },
    "android": {
        "runtime_os": "android",
        "java_executable": "java",
        "java_home_subdir": "",
        "library_dirs": _UNIX_LIBRARY_DIRS,
        "library_path_vars": ["LD_LIBRARY_PATH"],
    },
    "ios": {
        "runtime_os": "ios",
        "java_executable": "java",
        "java_home_subdir": "",
        "library_dirs": _UNIX_LIBRARY_DIRS,
        "library_path_vars": ["DYLD_LIBRARY_PATH"],
    },
}

# Fallback row for unrecognized systems; never used to build a download URL
_UNKNOWN_CAPABILITIES: Dict[str, Any] = {
    "runtime_os": UNKNOWN,
    "java_executable": "java",
    "java_home_subdir": "",
    "library_dirs": _UNIX_LIBRARY_DIRS,
    "library_path_vars": ["LD_LIBRARY_PATH"],
}

# platform.machine() values (lowercased) -> architecture id
ARCHITECTURE_ALIASES: Dict[str, str] = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "i386": "x32",
    "i486": "x32",
    "i586": "x32",
    "i686": "x32",
    "x86": "x32",
    "aarch64": "aarch64",
    "arm64": "aarch64",
    "armv6l": "arm",
    "armv7l": "arm",
    "armv8l": "arm",
    "arm": "arm",
    "ppc64": "ppc64",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
    "sparc64": "sparcv9",
    "sun4v": "sparcv9",
    "sun4u": "sparcv9",
    "riscv64": "riscv64",
}

# platform.system() values (lowercased) -> os id
SYSTEM_ALIASES: Dict[str, str] = {
    "linux": "linux",
    "windows": "windows",
    "darwin": "mac",
    "sunos": "solaris",
    "aix": "aix",
    "android": "android",
    "ios": "ios",
    "ipados": "ios",
}


@dataclass(frozen=True)
class PlatformInfo:
    """
    Resolved host platform.

    Attributes:
        os: Operating system id ('linux', 'linux-musl', 'windows', 'mac', ...)
        arch: CPU architecture id ('x64', 'aarch64', ...)
    """

    os: str
    arch: str

    @property
    def capabilities(self) -> Dict[str, Any]:
        """Capability row for this operating system."""
        return get_platform_capabilities(self.os)

    @property
    def runtime_os(self) -> str:
        """Operating system id as the runtime vendor spells it."""
        return self.capabilities["runtime_os"]

    @property
    def java_executable(self) -> str:
        return self.capabilities["java_executable"]

    @property
    def is_supported(self) -> bool:
        return self.os != UNKNOWN and self.arch != UNKNOWN

    def java_home(self, runtime_dir: Path) -> Path:
        """
        Get the runtime home inside an extracted or installed runtime directory.

        macOS bundles nest the home under Contents/Home; other platforms are flat.
        """
        subdir = self.capabilities["java_home_subdir"]
        return Path(runtime_dir) / subdir if subdir else Path(runtime_dir)

    def java_executable_path(self, runtime_dir: Path) -> Path:
        return self.java_home(runtime_dir) / "bin" / self.java_executable

    def library_dirs(self, java_home: Path) -> List[Path]:
        return [Path(java_home) / d for d in self.capabilities["library_dirs"]]

    def platform_string(self) -> str:
        """
        Get canonical platform string.

        Example:
            >>> PlatformInfo('linux', 'x64').platform_string()
            'linux-x64'
        """
        return f"{self.os}-{self.arch}"

    def __str__(self) -> str:
        return self.platform_string()


def get_platform_capabilities(os_id: str) -> Dict[str, Any]:
    """
    Get the capability row for an operating system.

    Args:
        os_id: Operating system id (e.g., 'linux', 'mac')

    Returns:
        Capability dictionary (a fallback row for unknown systems)
    """
    return PLATFORM_CAPABILITIES.get(os_id, _UNKNOWN_CAPABILITIES)


def get_supported_platforms() -> List[str]:
    """Get the operating system ids that have a capability row."""
    return sorted(PLATFORM_CAPABILITIES)


def normalize_architecture(machine: str) -> str:
    """
    Map a raw machine name to an architecture id.

    Example:
        >>> normalize_architecture('AMD64')
        'x64'
        >>> normalize_architecture('mips')
        'unknown'
    """
    return ARCHITECTURE_ALIASES.get(machine.strip().lower(), UNKNOWN)


def normalize_os(system: str, musl: bool = False) -> str:
    """
    Map a raw system name to an os id.

    Args:
        system: Value of platform.system()
        musl: Whether the C library is musl (only meaningful on Linux)
    """
    os_id = SYSTEM_ALIASES.get(system.strip().lower(), UNKNOWN)
    if os_id == "linux" and musl:
        return "linux-musl"
    return os_id


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """
    Detect the host platform.

    This function is cached - it only runs detection once per process.

    Example:
        >>> info = detect_platform()
        >>> print(f"Running on {info.platform_string()}")
        Running on linux-x64
    """
    return PlatformInfo(os=_detect_os(), arch=_detect_architecture())


def resolve_platform() -> Tuple[str, str]:
    """Return the ``(os, arch)`` pair for the host."""
    info = detect_platform()
    return info.os, info.arch


def _detect_os() -> str:
    system = platform.system()
    if system.lower() == "linux" and "android" in platform.platform().lower():
        return "android"
    return normalize_os(system, musl=system.lower() == "linux" and _is_musl())


def _detect_architecture() -> str:
    return normalize_architecture(platform.machine())


def _is_musl() -> bool:
    """
    Detect whether the Linux C library is musl.

    Returns:
        True on musl-based systems (Alpine and friends)
    """
    libc, _ = platform.libc_ver()
    if libc == "glibc":
        return False

    try:
        result = subprocess.run(
            ["ldd", "--version"], capture_output=True, text=True, timeout=5
        )
    except (OSError, subprocess.SubprocessError):
        return False

    output = result.stdout.lower() + result.stderr.lower()
    return "musl" in output


def clear_platform_cache():
    """
    Clear the platform detection cache.

    This forces the next call to detect_platform() to re-detect.
    """
    detect_platform.cache_clear()


__all__ = [
    "PLATFORM_CAPABILITIES",
    "PlatformInfo",
    "UNKNOWN",
    "clear_platform_cache",
    "detect_platform",
    "get_platform_capabilities",
    "get_supported_platforms",
    "normalize_architecture",
    "normalize_os",
    "resolve_platform",
]
