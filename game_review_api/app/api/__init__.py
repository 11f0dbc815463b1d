"""HTTP layer: versioned routers (currently only ``v1``)."""
