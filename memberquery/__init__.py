"""Member/Team query layer — optional-predicate search with paged counts."""

__version__ = "1.0.0"
