"""File manager and storage reconciliation"""
