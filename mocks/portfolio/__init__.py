"""
In-memory mock of the portfolio API (public reads and admin mutations).
"""
