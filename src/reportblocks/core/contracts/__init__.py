"""Data contracts for report content."""
