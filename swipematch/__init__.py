"""SwipeMatch connection and relationship engine."""
