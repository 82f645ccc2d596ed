"""Route modules, grouped into versioned routers by ``api.v1``."""
