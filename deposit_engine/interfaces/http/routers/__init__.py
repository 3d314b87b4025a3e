"""Ops API routers."""
