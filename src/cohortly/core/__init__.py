"""Core: database, models, schemas, errors and validation."""
