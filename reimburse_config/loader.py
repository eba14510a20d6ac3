"""
Policy-Set Loader (``reimburse_config.loader``).

Responsibility
--------------
Load a policy-set YAML document and parse it into ``Policy`` value
objects plus an optional ``CityTierTable``.  A policy set is the
file-based way to provision a tenant's policies (and the shipped default
templates).

Document shape::

    name: default
    version: 1
    city_tiers:
      multipliers: {tier1: 1.6}
      cities: {tier1: [北京, 上海, Beijing, Shanghai]}
    policies:
      - name: Travel expense policy
        priority: 1
        rules:
          - name: Meal cap
            category: meal
            limit: {type: per_day, amount: 150, currency: CNY}

Architecture position
---------------------
**Config layer** -- tooling above the modules layer.  Decodes rules with
``reimburse_modules.policy.codec`` in strict mode.  Never imported by
kernel or engines.

Invariants enforced
-------------------
* Every rule in a policy set must decode; a bad rule fails the whole set
  rather than being skipped.
* ``compute_checksum`` produces a deterministic SHA-256 over the parsed
  document, independent of key order in the file.

Failure modes
-------------
* Missing file  -> ``FileNotFoundError`` propagates.
* Invalid YAML, wrong document shape, bad rule or bad city tier ->
  ``PolicySetLoadError`` carrying the path and the detail.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from uuid import UUID

import yaml

from reimburse_kernel.exceptions import CityTierError, PolicySetLoadError
from reimburse_kernel.logging_config import get_logger
from reimburse_modules.policy.codec import policy_from_dict
from reimburse_modules.policy.config import CityTierTable, PolicyEngineConfig
from reimburse_modules.policy.models import Policy

logger = get_logger("config.loader")


@dataclass(frozen=True)
class PolicySet:
    """A parsed policy-set document for one tenant."""
    name: str
    version: int
    tenant_id: UUID
    policies: tuple[Policy, ...]
    city_tiers: CityTierTable | None
    checksum: str
    source_path: str


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str, ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_city_tiers(data: Any) -> CityTierTable:
    """
    Parse the ``city_tiers`` section.

    Raises:
        CityTierError: If the section is inconsistent.
        ValueError: If it is not a mapping.
    """
    if not isinstance(data, dict):
        raise ValueError("city_tiers must be a mapping")
    return CityTierTable.from_dict(data)


def parse_policy_set(
    data: dict[str, Any],
    tenant_id: UUID,
    source_path: str = "<memory>",
    config: PolicyEngineConfig | None = None,
) -> PolicySet:
    """
    Parse an already-loaded policy-set document.

    Rules without a severity take ``config.default_severity``; limits
    without a currency take ``config.base_currency``.

    Raises:
        PolicySetLoadError: If the document is malformed.
    """
    if not isinstance(data, dict):
        raise PolicySetLoadError(source_path, "document root must be a mapping")
    raw_policies = data.get("policies")
    if not isinstance(raw_policies, list):
        raise PolicySetLoadError(source_path, "'policies' must be a list")

    config = config or PolicyEngineConfig.with_defaults()
    try:
        policies = tuple(
            policy_from_dict(
                p, tenant_id, config.default_severity,
                strict=True, default_currency=config.base_currency,
            )
            for p in raw_policies
        )
        city_tiers = parse_city_tiers(data["city_tiers"]) if data.get("city_tiers") else None
    except (AttributeError, KeyError, TypeError, ValueError, CityTierError) as exc:
        raise PolicySetLoadError(source_path, str(exc)) from exc

    return PolicySet(
        name=str(data.get("name") or Path(source_path).stem),
        version=int(data.get("version", 1)),
        tenant_id=tenant_id,
        policies=policies,
        city_tiers=city_tiers,
        checksum=compute_checksum(data),
        source_path=source_path,
    )


def load_policy_set(
    path: Path | str,
    tenant_id: UUID,
    config: PolicyEngineConfig | None = None,
) -> PolicySet:
    """
    Load and parse a policy-set YAML file for ``tenant_id``.

    Raises:
        FileNotFoundError: if the file does not exist.
        PolicySetLoadError: if the file is not a valid policy set.
    """
    path = Path(path)
    try:
        data = load_yaml_file(path)
    except yaml.YAMLError as exc:
        raise PolicySetLoadError(str(path), f"invalid YAML: {exc}") from exc

    policy_set = parse_policy_set(data, tenant_id, str(path), config)
    logger.info("policy_set_loaded", extra={
        "path": str(path),
        "policy_set": policy_set.name,
        "version": policy_set.version,
        "policy_count": len(policy_set.policies),
        "rule_count": sum(len(p.rules) for p in policy_set.policies),
        "checksum": policy_set.checksum,
    })
    return policy_set
