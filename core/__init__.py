"""Core module - configuration and observability shared by every component.

Pricing logic lives in /pricing/, storage in /storage/ and the
reconciliation engine in /validation/.
"""

__version__ = "1.0.0"
