"""
Reimbursement Kernel

Shared infrastructure for the expense policy compliance engine:
- Structured JSON logging with request-scoped context
- Typed exception hierarchy with machine-readable codes
- SQLAlchemy declarative base, engine and column types
"""

__version__ = "0.1.0"
