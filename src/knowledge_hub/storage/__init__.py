"""
Storage — optional durable mirror of the in-memory index (write-only).
"""
