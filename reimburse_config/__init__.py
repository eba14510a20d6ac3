"""
reimburse_config -- policy-set files for expense policy provisioning.

Responsibility:
    Locates and loads YAML policy sets placed in a configuration directory.
    The ``default`` set is built from ``reimburse_modules.policy.defaults``
    unless the directory carries its own ``default.yaml``.

Architecture position:
    Configuration -- sits above ``reimburse_kernel`` and
    ``reimburse_modules``.  The kernel and the engines MUST NEVER import
    from ``reimburse_config``.

Failure modes:
    - ``FileNotFoundError`` -- no policy set with the requested name.
    - ``PolicySetLoadError`` -- the set exists but is malformed.

Audit relevance:
    Every ``get_policy_set()`` call emits a ``POLICY_SET_TRACE`` log entry
    with the set name, version and checksum, tying compliance decisions
    back to the exact policy set that configured them.
"""

from __future__ import annotations

import logging
from pathlib import Path
from uuid import UUID

from reimburse_config.loader import (
    PolicySet,
    compute_checksum,
    load_policy_set,
    load_yaml_file,
    parse_policy_set,
)
from reimburse_modules.policy.config import PolicyEngineConfig
from reimburse_modules.policy.defaults import DEFAULT_POLICY_SET

_logger = logging.getLogger("reimburse_kernel.config")

DEFAULT_SET_NAME = "default"
BUILTIN_SOURCE = "<builtin:default>"


def get_policy_set(
    tenant_id: UUID,
    name: str = DEFAULT_SET_NAME,
    config_dir: Path | None = None,
    config: PolicyEngineConfig | None = None,
) -> PolicySet:
    """Load the policy set ``<config_dir>/<name>.yaml`` for a tenant.

    Args:
        tenant_id: Tenant that will own the parsed policies.
        name: Policy-set file stem.
        config_dir: Directory holding tenant policy sets.
        config: Engine config supplying the default severity and currency.

    Raises:
        FileNotFoundError: If the file does not exist and ``name`` is not
            the built-in default set.
        PolicySetLoadError: If the file is malformed.
    """
    path = Path(config_dir) / f"{name}.yaml" if config_dir is not None else None
    if path is not None and path.is_file():
        policy_set = load_policy_set(path, tenant_id, config)
    elif name == DEFAULT_SET_NAME:
        policy_set = parse_policy_set(DEFAULT_POLICY_SET, tenant_id, BUILTIN_SOURCE, config)
    else:
        raise FileNotFoundError(f"Policy set not found: {path or name}")

    _logger.info(
        "POLICY_SET_TRACE",
        extra={
            "trace_type": "POLICY_SET_TRACE",
            "policy_set": policy_set.name,
            "policy_set_version": policy_set.version,
            "checksum": policy_set.checksum,
            "policy_count": len(policy_set.policies),
        },
    )
    return policy_set


__all__ = [
    "BUILTIN_SOURCE",
    "DEFAULT_SET_NAME",
    "PolicySet",
    "compute_checksum",
    "get_policy_set",
    "load_policy_set",
    "load_yaml_file",
    "parse_policy_set",
]
