"""Infrastructure adapters: database, persistence, blob storage and auth."""
