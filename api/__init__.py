"""
HTTP API of Inbox Actions (FastAPI).
"""
