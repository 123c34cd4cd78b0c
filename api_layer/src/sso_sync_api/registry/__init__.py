"""Central registry: tenants, canonical users and the sync log."""
