"""
HTTP API for glossaries.
"""
