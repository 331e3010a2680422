"""
Platform Operations

Everything that differs between Windows and POSIX systems lives behind the
PlatformOps interface: executable lookup, argument quoting for log output,
process creation, modification-time access and registry queries.

One implementation is selected at startup with current_platform() and passed
to the components that need it, so tests can substitute a double.
"""

import os
import shlex
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence

from tikzcache.contexts.tooling.exceptions import (
    ToolLaunchError,
    ToolNotFoundError,
    ToolTimeoutError,
)
from tikzcache.contexts.tooling.logger import log_command

# Registry hives searched for installed software, in priority order
REGISTRY_HIVES = ("HKLM", "HKCU")


class PlatformOps(ABC):
    """Platform capability used for process execution and file timestamps."""

    # Key used to pick per-platform tool candidates from settings
    key: str = ""
    supports_registry: bool = False

    @abstractmethod
    def which(self, name: str) -> Optional[str]:
        """Return the full path of an executable on the search path, or None."""

    @abstractmethod
    def quote(self, arg: str) -> str:
        """Quote a single argument the way this platform's shell would need it."""

    def format_command(self, args: Sequence[str]) -> str:
        """Render an argument vector as a copy-pasteable command line."""
        return " ".join(self.quote(str(arg)) for arg in args)

    def _popen_kwargs(self) -> dict:
        return {}

    def run(
        self,
        args: Sequence[str],
        cwd: Optional[Path] = None,
        output: Optional[Path] = None,
        timeout: Optional[float] = None,
    ) -> int:
        """
        Run a command to completion.

        Args:
            args: Argument vector (args[0] is the executable)
            cwd: Working directory for the process
            output: File receiving merged stdout/stderr (None discards both)
            timeout: Seconds to wait before killing the process (None waits forever)

        Returns:
            Process exit code

        Raises:
            ToolNotFoundError: If the executable does not exist
            ToolLaunchError: If the executable exists but cannot be started
            ToolTimeoutError: If the process outlived the timeout
        """
        args = [str(arg) for arg in args]
        log_command(self.format_command(args))

        if output is None:
            return self._run(args, cwd, subprocess.DEVNULL, subprocess.DEVNULL, timeout)

        with open(output, "wb") as handle:
            return self._run(args, cwd, handle, subprocess.STDOUT, timeout)

    def _run(self, args: List[str], cwd, stdout, stderr, timeout: Optional[float]) -> int:
        try:
            result = subprocess.run(
                args,
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                stdout=stdout,
                stderr=stderr,
                timeout=timeout,
                **self._popen_kwargs(),
            )
        except FileNotFoundError as e:
            raise ToolNotFoundError(args[0], args) from e
        except subprocess.TimeoutExpired as e:
            raise ToolTimeoutError(args[0], timeout) from e
        except OSError as e:
            raise ToolLaunchError(args[0], args, e.strerror or str(e)) from e
        return result.returncode

    def start(
        self,
        args: Sequence[str],
        cwd: Optional[Path] = None,
        output: Optional[Path] = None,
    ) -> subprocess.Popen:
        """
        Start a command without waiting for it.

        Merged stdout/stderr goes to the output file, so several started
        processes never block on each other's unread pipes.

        Args:
            args: Argument vector (args[0] is the executable)
            cwd: Working directory for the process
            output: File receiving merged stdout/stderr (None discards both)

        Raises:
            ToolNotFoundError: If the executable does not exist
            ToolLaunchError: If the executable exists but cannot be started
        """
        args = [str(arg) for arg in args]
        log_command(self.format_command(args))

        if output is None:
            return self._start(args, cwd, subprocess.DEVNULL, subprocess.DEVNULL)

        # The child holds its own descriptor once started
        with open(output, "wb") as handle:
            return self._start(args, cwd, handle, subprocess.STDOUT)

    def _start(self, args: List[str], cwd, stdout, stderr) -> subprocess.Popen:
        try:
            return subprocess.Popen(
                args,
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                stdout=stdout,
                stderr=stderr,
                **self._popen_kwargs(),
            )
        except FileNotFoundError as e:
            raise ToolNotFoundError(args[0], args) from e
        except OSError as e:
            raise ToolLaunchError(args[0], args, e.strerror or str(e)) from e

    def is_file(self, path) -> bool:
        return Path(path).is_file()

    def get_mtime(self, path) -> Optional[int]:
        """Modification time in nanoseconds, or None if it cannot be read."""
        try:
            return os.stat(path).st_mtime_ns
        except OSError:
            return None

    def set_mtime(self, target, source) -> int:
        """
        Copy source's modification time onto target (access time is preserved).

        Returns:
            The modification time written, in nanoseconds
        """
        source_mtime = os.stat(source).st_mtime_ns
        target_atime = os.stat(target).st_atime_ns
        os.utime(target, ns=(target_atime, source_mtime))
        return source_mtime

    def registry_subkeys(self, hive: str, key: str) -> List[str]:
        """Names of the subkeys of a registry key (empty where there is no registry)."""
        return []

    def registry_value(self, hive: str, key: str, value_name: str) -> Optional[str]:
        """A string value stored under a registry key, or None."""
        return None


class PosixOps(PlatformOps):
    """Linux, macOS and other POSIX systems."""

    key = "posix"

    def which(self, name: str) -> Optional[str]:
        return shutil.which(name)

    def quote(self, arg: str) -> str:
        return shlex.quote(arg)


class WindowsOps(PlatformOps):
    """Windows, including registry access for software that does not register on PATH."""

    key = "windows"
    supports_registry = True

    def which(self, name: str) -> Optional[str]:
        found = shutil.which(name)
        if found is None and not name.lower().endswith(".exe"):
            found = shutil.which(f"{name}.exe")
        return found

    def quote(self, arg: str) -> str:
        return subprocess.list2cmdline([arg])

    def _popen_kwargs(self) -> dict:
        # Console tools would otherwise flash a window per invocation
        return {"creationflags": getattr(subprocess, "CREATE_NO_WINDOW", 0)}

    def _open_key(self, hive: str, key: str):
        import winreg

        roots = {"HKLM": winreg.HKEY_LOCAL_MACHINE, "HKCU": winreg.HKEY_CURRENT_USER}
        return winreg.OpenKey(roots[hive], key)

    def registry_subkeys(self, hive: str, key: str) -> List[str]:
        import winreg

        try:
            with self._open_key(hive, key) as handle:
                count = winreg.QueryInfoKey(handle)[0]
                return [winreg.EnumKey(handle, i) for i in range(count)]
        except OSError:
            # Key does not exist in this hive
            return []

    def registry_value(self, hive: str, key: str, value_name: str) -> Optional[str]:
        import winreg

        try:
            with self._open_key(hive, key) as handle:
                value, value_type = winreg.QueryValueEx(handle, value_name)
        except OSError:
            return None

        if value_type not in (winreg.REG_SZ, winreg.REG_EXPAND_SZ):
            return None
        return str(value).strip()


def current_platform() -> PlatformOps:
    """Select the PlatformOps implementation for the running interpreter."""
    if os.name == "nt":
        return WindowsOps()
    return PosixOps()
