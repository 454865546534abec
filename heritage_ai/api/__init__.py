"""HTTP layer: middleware, dependencies, routes and schemas."""
