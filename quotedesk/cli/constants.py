"""Exit codes shared by CLI commands."""

SYSTEM_EXIT_CODE = 1
VALIDATION_EXIT_CODE = 10
NOT_FOUND_EXIT_CODE = 11
STORAGE_EXIT_CODE = 20

__all__ = ["NOT_FOUND_EXIT_CODE", "STORAGE_EXIT_CODE", "SYSTEM_EXIT_CODE", "VALIDATION_EXIT_CODE"]
