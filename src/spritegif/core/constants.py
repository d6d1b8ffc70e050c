"""Centralized constants for the application."""

# Time
MS_PER_SECOND = 1000

# Frame identity
FRAME_ID_LENGTH = 9
FRAME_ID_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"

# Image sources
DATA_URL_PREFIX = "data:"

# Surfaces
SURFACE_MODE = "RGBA"
TRANSPARENT = (0, 0, 0, 0)

# Export formats
GIF_FORMAT = "GIF"
SHEET_FORMAT = "PNG"
