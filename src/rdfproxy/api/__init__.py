"""HTTP API for rdfproxy."""
