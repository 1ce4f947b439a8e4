"""
Pydantic models for fingerprints, registered assets and verification results.
"""

from .asset import *
from .verification import *
