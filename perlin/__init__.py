from .noise_2d import Perlin2D, combined2, fbm2, ridged2

__all__ = ["Perlin2D", "combined2", "fbm2", "ridged2"]
