"""
Core infrastructure: configuration of logging, errors, and the registry,
ledger and storage clients the verification engine consumes.
"""
