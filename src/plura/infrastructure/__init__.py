"""Infrastructure adapters: databases, object storage, payments and uploads."""
