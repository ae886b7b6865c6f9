# Import all models here so Base.metadata knows every table
from polis.db.session import Base

from polis.modules.user_management.models.user import User
from polis.modules.posts.models.post import Post, Event, Image, Tag, PostTag
from polis.modules.friendships.models.friendship import Friendship
