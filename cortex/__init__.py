"""
cortex - Knowledge library organization and query engine
"""

__version__ = "0.3.0"
