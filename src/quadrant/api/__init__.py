"""HTTP API for Quadrant."""
