"""Infrastructure adapters (object storage, view cache)"""
