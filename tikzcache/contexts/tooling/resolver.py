"""
Tool Resolution

Maps logical tool names (e.g. "raster_interpreter") to executables. Candidates
are tried in order through the platform's executable lookup; on Windows,
Ghostscript is additionally looked up in the registry because its installer
does not put it on PATH.

Resolution never fails: when nothing is found, the first candidate name is
returned unresolved and the error surfaces when the tool is actually invoked.
"""

import re
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from tikzcache.contexts.tooling.logger import log_resolution
from tikzcache.contexts.tooling.platform_ops import REGISTRY_HIVES, PlatformOps

# Logical tools that have a registry fallback: tool -> (product key, DLL path value)
REGISTRY_PRODUCTS = {
    "raster_interpreter": ("Ghostscript", "GS_DLL"),
}

VERSION_PATTERN = re.compile(r"\d+(?:\.\d+)*")
DLL_NAME_PATTERN = re.compile(r"gsdll\d*\.dll$", re.IGNORECASE)


@dataclass(frozen=True)
class ToolHandle:
    """
    Resolved executable for a logical tool name.

    Attributes:
        name: Logical tool name (e.g., "raster_interpreter")
        path: Executable path, or the bare first candidate when unresolved
        strategy: How it was found ("search_path", "registry" or "unresolved")
    """

    name: str
    path: str
    strategy: str

    @property
    def resolved(self) -> bool:
        return self.strategy != "unresolved"

    def __str__(self) -> str:
        return self.path


def parse_version(text: str) -> Optional[Tuple[int, ...]]:
    """Parse "9.56.1" into (9, 56, 1); None if text is not a dotted number."""
    if not VERSION_PATTERN.fullmatch(text.strip()):
        return None
    return tuple(int(part) for part in text.strip().split("."))


def companion_executable(dll_path: str) -> str:
    """
    Derive the console executable installed next to a Ghostscript DLL.

    The DLL's bit width decides the name: gsdll64.dll -> gswin64c.exe,
    anything else -> gswin32c.exe.

    Example:
        companion_executable(r"C:\\gs\\gs10.02.1\\bin\\gsdll64.dll")
        # "C:\\gs\\gs10.02.1\\bin\\gswin64c.exe"
    """
    directory = DLL_NAME_PATTERN.sub("", dll_path)
    if "gsdll64" in dll_path.lower():
        return f"{directory}gswin64c.exe"
    return f"{directory}gswin32c.exe"


def search_registry(ops: PlatformOps, product: str, dll_value: str) -> Optional[str]:
    """
    Find an installed product's executable via the registry.

    Machine-wide entries are searched before per-user ones. Within a hive,
    versions are tried newest first and the first executable that exists wins.

    Args:
        ops: Platform operations (must support registry queries)
        product: Key under SOFTWARE (e.g., "Ghostscript")
        dll_value: Value holding the library path (e.g., "GS_DLL")

    Returns:
        Executable path, or None if no installed version has one on disk
    """
    base_key = f"SOFTWARE\\{product}"

    for hive in REGISTRY_HIVES:
        versions = []
        for subkey in ops.registry_subkeys(hive, base_key):
            version = parse_version(subkey)
            if version is not None:
                versions.append((version, subkey))

        versions.sort(reverse=True)

        for _, subkey in versions:
            dll_path = ops.registry_value(hive, f"{base_key}\\{subkey}", dll_value)
            if not dll_path:
                continue
            candidate = companion_executable(dll_path)
            if ops.is_file(candidate):
                return candidate

    return None


def resolve_candidates(
    ops: PlatformOps, tool: str, candidates: Sequence[str]
) -> ToolHandle:
    """
    Resolve one logical tool from an ordered candidate list (no memoization).

    Args:
        ops: Platform operations
        tool: Logical tool name
        candidates: Executable names to try, highest priority first

    Returns:
        ToolHandle; unresolved handles carry the first candidate name

    Raises:
        ValueError: If candidates is empty
    """
    if not candidates:
        raise ValueError(f"No executable candidates configured for tool '{tool}'")

    for candidate in candidates:
        found = ops.which(candidate)
        if found:
            return ToolHandle(name=tool, path=found, strategy="search_path")

    if ops.supports_registry and tool in REGISTRY_PRODUCTS:
        product, dll_value = REGISTRY_PRODUCTS[tool]
        found = search_registry(ops, product, dll_value)
        if found:
            return ToolHandle(name=tool, path=found, strategy="registry")

    return ToolHandle(name=tool, path=candidates[0], strategy="unresolved")


class ToolResolver:
    """
    Memoizing resolver for the logical tools used by the render pipeline.

    Each tool is resolved at most once per resolver; lookups after the first
    are lock-free reads of the cache, so one resolver can be shared by
    concurrent render jobs.
    """

    def __init__(self, ops: PlatformOps, candidates: Dict[str, Sequence[str]]):
        """
        Initialize the resolver.

        Args:
            ops: Platform operations used for lookups
            candidates: Logical tool name -> ordered executable candidates
        """
        self.ops = ops
        self.candidates = {tool: list(names) for tool, names in candidates.items()}
        self._cache: Dict[str, ToolHandle] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings, ops: PlatformOps) -> "ToolResolver":
        """Build a resolver from the `tools` section of the settings."""
        candidates = {tool: list(per_platform[ops.key]) for tool, per_platform in settings.tools.items()}
        return cls(ops, candidates)

    def resolve(self, tool: str) -> ToolHandle:
        """
        Resolve a logical tool name, memoizing the result.

        Raises:
            ValueError: If the tool has no configured candidates
        """
        handle = self._cache.get(tool)
        if handle is not None:
            return handle

        with self._lock:
            handle = self._cache.get(tool)
            if handle is None:
                if tool not in self.candidates:
                    raise ValueError(f"Unknown tool: {tool}")
                handle = resolve_candidates(self.ops, tool, self.candidates[tool])
                log_resolution(tool, handle.path, handle.strategy)
                self._cache[tool] = handle

        return handle

    def path(self, tool: str) -> str:
        """Executable path (or deferred-failure name) for a logical tool."""
        return self.resolve(tool).path

    def resolve_all(self) -> List[ToolHandle]:
        """Resolve every configured tool, in configuration order."""
        return [self.resolve(tool) for tool in self.candidates]

    def is_cached(self, tool: str) -> bool:
        return tool in self._cache

    def clear_cache(self):
        """Forget all resolutions."""
        with self._lock:
            self._cache.clear()
