"""HTTP trigger endpoints for the sync jobs."""
