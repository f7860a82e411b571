"""Load and consistency testing harness for schema-based transactional key-value stores."""

__version__ = "0.1.0"
