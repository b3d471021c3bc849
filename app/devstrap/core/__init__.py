"""Core engine: platform probe, configuration resolution and convergence."""
