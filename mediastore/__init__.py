"""Multi-tenant media asset store with JSON metadata sidecars."""
