"""contextpack - tiered, access-controlled document context for generative AI calls."""

__version__ = "0.1.0"
