"""Challenge submission review and winner selection."""
