"""HTTP service exposing the compliance registries."""
