"""Font Evaluator.

Rate AI font recommendations per prompt and keep per-user ratings in a
file, database or remote feedback store.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
