"""
postfilter - adaptive local classification of social feed posts.
"""

__version__ = "0.1.0"
