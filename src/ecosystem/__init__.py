"""Local package-manager ecosystems understood by depstash."""
