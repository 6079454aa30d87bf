"""Multi-tenant school feedback platform"""

__version__ = '1.0.0'
