"""
Modules package initialization.
Each functional area of the API lives in its own subpackage.
"""

from polis.modules import auth
from polis.modules import user_management
from polis.modules import posts
from polis.modules import images
from polis.modules import friendships
from polis.modules import search
