"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path, PurePosixPath, PureWindowsPath

CONFIG_FILE_NAME = "bundle_diff.toml"
MAX_WORKERS_CAP = 8

DEFAULT_CODESIGN = "codesign"
DEFAULT_ASSETUTIL = "assetutil"
DEFAULT_AOT_TOOLS = ("aot-tools",)
DEFAULT_DEBUG_INFO_PATH = "build/patch-debug.zip"


@dataclass(slots=True, frozen=True)
class ToolsConfig:
    """Executable names of optional host tools."""

    codesign: str = DEFAULT_CODESIGN
    assetutil: str = DEFAULT_ASSETUTIL


@dataclass(slots=True, frozen=True)
class DiffConfig:
    """Archive diff settings."""

    max_workers: int = 2


@dataclass(slots=True, frozen=True)
class LinkConfig:
    """Linker invocation settings."""

    aot_tools: tuple[str, ...] = DEFAULT_AOT_TOOLS
    debug_info_path: str = DEFAULT_DEBUG_INFO_PATH


@dataclass(slots=True, frozen=True)
class BundleDiffConfig:
    """Fully merged configuration."""

    project_root: Path
    data_dir: Path
    tools: ToolsConfig
    diff: DiffConfig
    link: LinkConfig

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot."""
        return {
            "project_root": str(self.project_root),
            "data_dir": str(self.data_dir),
            "tools": {
                "codesign": self.tools.codesign,
                "assetutil": self.tools.assetutil,
            },
            "diff": {
                "max_workers": self.diff.max_workers,
            },
            "link": {
                "aot_tools": list(self.link.aot_tools),
                "debug_info_path": self.link.debug_info_path,
            },
        }


@dataclass(slots=True, frozen=True)
class ConfigOverrides:
    """Optional overrides applied at highest precedence."""

    data_dir: Path | None = None
    max_workers: int | None = None
    aot_tools: tuple[str, ...] | None = None
    debug_info_path: str | None = None


def default_config(project_root: Path) -> BundleDiffConfig:
    """Build default config for a given project root."""
    resolved_root = project_root.resolve()
    return BundleDiffConfig(
        project_root=resolved_root,
        data_dir=resolved_root / ".bundle_diff",
        tools=ToolsConfig(),
        diff=DiffConfig(),
        link=LinkConfig(),
    )


def load_config_file(project_root: Path) -> dict[str, object]:
    """Load optional bundle_diff.toml from the project root."""
    config_path = project_root / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{CONFIG_FILE_NAME} must contain a top-level table.")
    return payload


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def _non_empty_string(value: object, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Config field '{name}' must be a non-empty string.")
    return value


def _command(value: object, name: str) -> tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)) or not value:
        raise ValueError(f"Config field '{name}' must be a non-empty list of strings.")
    return tuple(_non_empty_string(item, name) for item in value)


def _relative_path(value: object, name: str) -> str:
    text = _non_empty_string(value, name)
    if PurePosixPath(text).is_absolute() or PureWindowsPath(text).is_absolute():
        raise ValueError(f"Config field '{name}' must be a relative path.")
    return text


def merge_config(
    base: BundleDiffConfig, file_payload: dict[str, object], overrides: ConfigOverrides
) -> BundleDiffConfig:
    """Merge defaults, config file, then overrides."""
    tools_payload = _get_table(file_payload, "tools")
    diff_payload = _get_table(file_payload, "diff")
    link_payload = _get_table(file_payload, "link")

    codesign = base.tools.codesign
    if "codesign" in tools_payload:
        codesign = _non_empty_string(tools_payload["codesign"], "tools.codesign")
    assetutil = base.tools.assetutil
    if "assetutil" in tools_payload:
        assetutil = _non_empty_string(tools_payload["assetutil"], "tools.assetutil")

    max_workers = _optional_positive_int_with_cap(
        diff_payload.get("max_workers"),
        "diff.max_workers",
        base.diff.max_workers,
        MAX_WORKERS_CAP,
    )

    aot_tools = base.link.aot_tools
    if "aot_tools" in link_payload:
        aot_tools = _command(link_payload["aot_tools"], "link.aot_tools")
    debug_info_path = base.link.debug_info_path
    if "debug_info_path" in link_payload:
        debug_info_path = _relative_path(link_payload["debug_info_path"], "link.debug_info_path")

    merged = BundleDiffConfig(
        project_root=base.project_root,
        data_dir=base.data_dir,
        tools=ToolsConfig(codesign=codesign, assetutil=assetutil),
        diff=DiffConfig(max_workers=max_workers),
        link=LinkConfig(aot_tools=aot_tools, debug_info_path=debug_info_path),
    )
    return apply_overrides(merged, overrides)


def apply_overrides(config: BundleDiffConfig, overrides: ConfigOverrides) -> BundleDiffConfig:
    """Apply explicit overrides at highest precedence."""
    max_workers = _optional_positive_int_with_cap(
        overrides.max_workers,
        "overrides.max_workers",
        config.diff.max_workers,
        MAX_WORKERS_CAP,
    )
    aot_tools = config.link.aot_tools
    if overrides.aot_tools is not None:
        aot_tools = _command(overrides.aot_tools, "overrides.aot_tools")
    debug_info_path = config.link.debug_info_path
    if overrides.debug_info_path is not None:
        debug_info_path = _relative_path(overrides.debug_info_path, "overrides.debug_info_path")
    data_dir = overrides.data_dir or config.data_dir
    return BundleDiffConfig(
        project_root=config.project_root,
        data_dir=data_dir.resolve(),
        tools=config.tools,
        diff=DiffConfig(max_workers=max_workers),
        link=LinkConfig(aot_tools=aot_tools, debug_info_path=debug_info_path),
    )


def load_effective_config(
    project_root: Path, overrides: ConfigOverrides | None = None
) -> BundleDiffConfig:
    """Load effective config using merge order defaults -> config file -> overrides."""
    resolved_root = project_root.resolve()
    base = default_config(resolved_root)
    payload = load_config_file(resolved_root)
    return merge_config(base, payload, overrides or ConfigOverrides())


def _optional_positive_int_with_cap(
    value: object,
    name: str,
    default: int,
    cap: int | None,
) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"Config field '{name}' must be a positive integer.")
    if cap is not None and value > cap:
        raise ValueError(f"Config field '{name}' must be <= {cap}.")
    return value
