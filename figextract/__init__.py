"""Figure extraction from document page images"""

__version__ = "1.0.0"
