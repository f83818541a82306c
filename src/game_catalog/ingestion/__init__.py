"""
Catalog ingestion pipeline.

Fetch, normalize, upsert, enrich, build and upload, coordinated by
the populate pipeline in the orchestrator module.
"""
