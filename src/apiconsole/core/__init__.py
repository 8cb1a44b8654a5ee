"""Core infrastructure: models, configuration, storage, errors and logging."""
