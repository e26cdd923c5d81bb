"""Service layer for vidcat: normalization, catalog rules, providers, and ingestion."""
