"""Public search and downloads"""
