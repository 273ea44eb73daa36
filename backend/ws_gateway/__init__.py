"""Real-time notification gateway."""
