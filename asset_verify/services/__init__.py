"""
Fingerprinting, matching and verification services.
"""

from .image_hash import *
from .content_hasher import *
from .matcher import *
from .verification import *
