"""
Security helpers.

Components:
    masking.py: Redact secrets, GUIDs, tokens and addresses for display
"""
