"""
Typed Exception Hierarchy for the Reimbursement Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the compliance engine (the submission flow, the real-time
item-add flow, the policy administration screens) need to tell apart a
broken configuration from a tenant-isolation bug without parsing message
strings.  Every exception therefore:
  1. Has its own class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (not just a message string)

Limit violations are NOT exceptions.  They are ordinary results
(``LimitCheckResult`` / ``ComplianceIssue``) returned to the caller.
Ledger lookup failures are NOT wrapped either; whatever the ledger adapter
raises reaches the caller unchanged.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ReimburseKernelError (base)
    |
    +-- PolicyError
    |   +-- TenantMismatchError
    |
    +-- ConfigurationError
        +-- PolicySetLoadError
        +-- CityTierError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                 | When Raised
----------------|----------------------|------------------------------------------
Policy          | TENANT_MISMATCH      | Policy source returned another tenant's policy
----------------|----------------------|------------------------------------------
Configuration   | POLICY_SET_LOAD      | Policy-set document is malformed
                | CITY_TIER_INVALID    | City tier table references an unknown tier
                |                      | or a non-positive multiplier

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        policy_set = load_policy_set(path, tenant_id=tenant_id)
    except PolicySetLoadError as e:
        log.error("bad policy file", extra={"path": e.path, "detail": e.detail})
        api_response(code=e.code)
"""


class ReimburseKernelError(Exception):
    """
    Base exception for all reimbursement kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "REIMBURSE_KERNEL_ERROR"


# Policy-related exceptions


class PolicyError(ReimburseKernelError):
    """Base exception for policy evaluation errors."""

    code: str = "POLICY_ERROR"


class TenantMismatchError(PolicyError):
    """
    A policy belonging to another tenant reached an evaluation call.

    Exactly one tenant's policies may be considered per call; mixing
    tenants would leak one company's limits into another's reimbursements.
    """

    code: str = "TENANT_MISMATCH"

    def __init__(self, expected_tenant_id: str, policy_id: str, actual_tenant_id: str):
        self.expected_tenant_id = expected_tenant_id
        self.policy_id = policy_id
        self.actual_tenant_id = actual_tenant_id
        super().__init__(
            f"Policy {policy_id} belongs to tenant {actual_tenant_id}, "
            f"expected {expected_tenant_id}"
        )


# Configuration exceptions


class ConfigurationError(ReimburseKernelError):
    """Base exception for configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class PolicySetLoadError(ConfigurationError):
    """A policy-set document could not be parsed into policies."""

    code: str = "POLICY_SET_LOAD"

    def __init__(self, path: str, detail: str):
        self.path = path
        self.detail = detail
        super().__init__(f"Cannot load policy set {path}: {detail}")


class CityTierError(ConfigurationError):
    """The city tier table is internally inconsistent."""

    code: str = "CITY_TIER_INVALID"

    def __init__(self, tier: str, reason: str):
        self.tier = tier
        self.reason = reason
        super().__init__(f"City tier '{tier}' is invalid: {reason}")
