"""Statement page sources."""
