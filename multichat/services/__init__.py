"""Chat ingestion services: adapters, credentials, supervision and fan-out."""
