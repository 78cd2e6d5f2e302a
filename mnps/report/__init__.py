"""Season report assembly: fetching, caching, context building and output formats."""
