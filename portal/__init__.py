"""Innovation challenge portal: submission review and winner selection services."""

__version__ = "0.1.0"
