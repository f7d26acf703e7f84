"""Append-only audit trail"""
