"""
HydroWatch - municipal water-service reporting API.

Citizens report water infrastructure problems on a map, administrators
track and resolve them, and payments go through a hosted gateway.
"""

__version__ = "0.1.0"
