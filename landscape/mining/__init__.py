"""landscape.mining — reference models, change-document classifier and process-mining engine."""
