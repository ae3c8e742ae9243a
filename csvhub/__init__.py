"""
CSV Hub - CSV ingestion and upload history API.
"""
__version__ = "0.1.0"
