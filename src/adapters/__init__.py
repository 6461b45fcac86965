"""Adapters connecting the core pipeline to Waze, Telegram, SQLite and log streams."""
