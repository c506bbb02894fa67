"""HTTP API for practising over the network (FastAPI)."""
