"""Read-side selector base for the reimbursement kernel."""

from reimburse_kernel.selectors.base import BaseSelector

__all__ = ["BaseSelector"]
