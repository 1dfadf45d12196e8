"""HTTP surface for event ingestion and engine inspection."""
