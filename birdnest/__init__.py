"""BirdNest - unified package manager front-end for pikman, apt and flatpak."""

__app_name__ = "BirdNest"
__version__ = "0.3.0"
