"""HTTP API for ripplerest."""
