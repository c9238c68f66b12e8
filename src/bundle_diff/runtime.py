"""Runtime construction of differs and link orchestrators."""

from __future__ import annotations

from pathlib import Path

from bundle_diff.config import BundleDiffConfig
from bundle_diff.differ import ArchiveDiffer
from bundle_diff.host import HostTools, SystemHostTools
from bundle_diff.link import AotTools, Linker, LinkOrchestrator
from bundle_diff.logging import JsonlAuditLogger
from bundle_diff.platforms import AndroidPolicy, ApplePolicy, PolicyRegistry

AUDIT_LOG_NAME = "audit.jsonl"


def build_policy_registry() -> PolicyRegistry:
    """Build the policy registry; Android suffixes are checked before Apple's generic .zip."""
    registry = PolicyRegistry()
    registry.register(AndroidPolicy())
    registry.register(ApplePolicy())
    return registry


def build_audit_logger(config: BundleDiffConfig) -> JsonlAuditLogger:
    return JsonlAuditLogger(path=config.data_dir / AUDIT_LOG_NAME)


def build_host_tools(config: BundleDiffConfig) -> HostTools:
    return SystemHostTools(codesign=config.tools.codesign, assetutil=config.tools.assetutil)


def build_archive_differ(
    config: BundleDiffConfig,
    archive_path: Path | str,
    host_tools: HostTools | None = None,
    *,
    policy_name: str | None = None,
) -> ArchiveDiffer:
    """Build a differ whose policy matches archive_path (or policy_name)."""
    registry = build_policy_registry()
    policy = registry.get(policy_name) if policy_name else registry.select(archive_path)
    return ArchiveDiffer(
        policy,
        host_tools or build_host_tools(config),
        max_workers=config.diff.max_workers,
        audit_logger=build_audit_logger(config),
    )


def build_link_orchestrator(
    config: BundleDiffConfig, linker: Linker | None = None
) -> LinkOrchestrator:
    """Build a link orchestrator over aot-tools (or the given linker)."""
    return LinkOrchestrator(
        linker or AotTools(command=config.link.aot_tools),
        debug_info_path=config.link.debug_info_path,
        audit_logger=build_audit_logger(config),
    )
