"""Resource submission and duplicate detection"""
