"""
Format-specific validators.
"""
