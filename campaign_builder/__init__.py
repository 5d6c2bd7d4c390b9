"""Campaign Builder: Google Ads Editor import and reconciliation service"""

__version__ = "1.0.0"
