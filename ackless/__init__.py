"""Action-confirmation engine for command protocols without acknowledgements."""

__version__ = "0.1.0"
