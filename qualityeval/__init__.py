"""qualityeval - software quality evaluation against configurable standards"""

__version__ = "1.0.0"
