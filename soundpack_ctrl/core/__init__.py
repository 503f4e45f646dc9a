"""Core pack ingestion pipeline: listing, auditing, extraction, sanitizing, publishing."""
