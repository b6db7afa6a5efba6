"""Directory service endpoint modules."""

__all__: list[str] = []
