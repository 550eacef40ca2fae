# file: distribution/__init__.py
from .allocator import (
    Allocation, AllocationMode, AllocationPreview,
    allocate, equal_split, largest_remainder, preview
)
from .executor import (
    AssignedSlice, AssignmentError, AssignmentExecutor,
    AssignmentReport, BulkUpdateError, plan_slices
)

__all__ = [
    "Allocation", "AllocationMode", "AllocationPreview",
    "allocate", "equal_split", "largest_remainder", "preview",
    "AssignedSlice", "AssignmentError", "AssignmentExecutor",
    "AssignmentReport", "BulkUpdateError", "plan_slices"
]
