"""Heritage AI gateway: provider-agnostic text generation for cultural-heritage entries."""

__version__ = "1.0.0"
