"""HTTP API: application factory, routes, middleware and schemas."""
