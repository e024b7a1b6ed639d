"""Analysis services: chunking, model calls, retry, deduplication and orchestration."""
