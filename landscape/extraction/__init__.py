"""landscape.extraction — extractor fleet, shared context and orchestration."""
