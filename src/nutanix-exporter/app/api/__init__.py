"""HTTP routers for the exporter."""
