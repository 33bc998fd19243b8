"""Issue projection, format encoders and the export orchestrator."""
