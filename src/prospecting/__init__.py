"""
Prospecting domain core.

Entity models, CGR catalog defaults, provider prompts, and the pure
normalize -> score -> filter steps shared by the search orchestrators.
"""
