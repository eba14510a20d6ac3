"""
Reimbursement Modules.

Thin orchestration over the kernel and the pure engines.  Each module
holds its domain value objects, configuration schema, ORM models,
read-only selectors and a service facade.

Modules:
- policy: expense policy compliance and limit accumulation
"""
