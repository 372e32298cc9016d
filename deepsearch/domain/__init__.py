"""Domain types: chat messages, parts, and stream events."""
