"""Common constants for the definition tables."""

# Table sizes (highest known identifier + 1)
NPC_DEFINITION_CAPACITY: int = 8152

# Placeholder values used by the default definition
DEFAULT_DEFINITION_ID: int = -1
NO_ANIMATION: int = -1

# Add additional table sizes as new definition types are loaded
