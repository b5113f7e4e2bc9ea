"""Routing: pattern compiler, composable routers, flattened route table.

Routes are registered during setup and flattened into an immutable,
per-method ordered table before the first request is dispatched.
"""
