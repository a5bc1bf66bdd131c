"""Account and token services."""
