"""
ReGain backend package.

A FastAPI service that lets construction sites list surplus materials and
lets nearby buyers find those sites and place orders against them.
"""

__version__ = "0.1.0"
