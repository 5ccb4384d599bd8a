"""Ingestion endpoints: GitHub push webhooks and direct commit submissions."""
