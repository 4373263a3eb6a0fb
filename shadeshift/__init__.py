"""Shadeshift - sunrise/sunset driven light and dark appearance switching."""

__version__ = "0.3.0"
