"""Review queue and curation state machine"""
