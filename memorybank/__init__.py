"""
memorybank - a deduplicated bank of short facts distilled from free text.
"""

__version__ = "0.1.0"
