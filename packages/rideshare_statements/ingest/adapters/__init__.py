"""Format-specific page source adapters."""
