"""Pack and install workflows built on the archive cache."""
