"""Chat widget controller."""
