"""
Varnishkit Utils - Logging, redaction and display helpers.
"""
