"""Core domain package for wazewatch.

Core contains dedup, classification, scheduling, and fan-out logic without
any Waze, Telegram, or storage-specific code, keeping the pipeline portable.
"""
