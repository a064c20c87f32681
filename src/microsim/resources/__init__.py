# src/microsim/resources/__init__.py

"""
Initializes the 'resources' sub-package.

This file "lifts" the concrete resource implementations from their
individual modules to this package level, e.g.:

from microsim.resources import Resource
"""

# Import concrete resource classes from their respective modules
from .fifo_resource import Resource
from .priority_resource import PriorityResource

# Define the public API of this sub-package for 'import *'
__all__ = [
    "Resource",
    "PriorityResource"
]
