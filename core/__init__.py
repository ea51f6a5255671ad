"""Core module - configuration and observability shared by every layer.

Business Central specifics live in /connectors/, the sync pipeline in /mirror/.
"""

__version__ = "0.1.0"
