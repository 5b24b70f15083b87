"""Review execution core: providers, retries, batching, findings and orchestration."""
