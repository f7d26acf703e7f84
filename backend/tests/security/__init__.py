"""Security tests for NoteHub

This module contains security-focused tests including:
- Authentication bypass attempts
- Token manipulation
- Privilege escalation by members
- Ban enforcement on every entry point
"""
