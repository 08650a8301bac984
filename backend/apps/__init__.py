"""HTTP route packages, one per domain."""
