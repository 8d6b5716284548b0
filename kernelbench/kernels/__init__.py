"""Bundled kernel families: stencil, rng-call, rng-distribution, bit-extract."""
